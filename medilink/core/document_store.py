"""Document store abstraction over Cloud Firestore."""

from abc import ABC, abstractmethod
from typing import Any

from google.cloud.firestore import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter
from structlog import get_logger

logger = get_logger(__name__)

Document = dict[str, Any]


class DocumentStore(ABC):
    """
    Keyed record store used by the services.

    Documents are plain dicts. Reads return the document with its key
    under ``"id"``. Only single-document writes and single-field queries
    are used; there are no multi-document transactions.
    """

    @abstractmethod
    async def add(self, collection: str, data: Document) -> str:
        """Insert a document with a store-assigned id and return the id."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or overwrite the document at a caller-chosen id."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document, or None when it does not exist."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        """Merge fields into an existing document."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document permanently."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        field: str,
        op: str,
        value: Any,
        limit: int | None = None,
    ) -> list[Document]:
        """Return documents matching a single field comparison, in store order."""


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by the async Firestore client."""

    def __init__(self, client: AsyncClient):
        """Initialize store with a Firestore client."""
        self.client = client

    async def add(self, collection: str, data: Document) -> str:
        _, doc_ref = await self.client.collection(collection).add(data)
        logger.debug("document_added", collection=collection, doc_id=doc_ref.id)
        return doc_ref.id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        await self.client.collection(collection).document(doc_id).set(data)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        snapshot = await self.client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return {"id": snapshot.id, **(snapshot.to_dict() or {})}

    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        await self.client.collection(collection).document(doc_id).update(data)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.client.collection(collection).document(doc_id).delete()
        logger.debug("document_deleted", collection=collection, doc_id=doc_id)

    async def query(
        self,
        collection: str,
        field: str,
        op: str,
        value: Any,
        limit: int | None = None,
    ) -> list[Document]:
        stmt = self.client.collection(collection).where(filter=FieldFilter(field, op, value))
        if limit is not None:
            stmt = stmt.limit(limit)

        return [
            {"id": snapshot.id, **(snapshot.to_dict() or {})} async for snapshot in stmt.stream()
        ]
