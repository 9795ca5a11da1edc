"""Consultation service for clinical notes."""

from datetime import UTC, datetime

import structlog

from medilink.core.document_store import DocumentStore
from medilink.core.exceptions import NotFoundException
from medilink.schemas.consultations import Consultation, ConsultationCreate, ConsultationUpdate

logger = structlog.get_logger(__name__)


class ConsultationService:
    """Service for consultation notes, one per completed appointment."""

    COLLECTION = "consultations"

    def __init__(self, store: DocumentStore):
        """Initialize service with a document store."""
        self.store = store

    async def create(self, data: ConsultationCreate) -> Consultation:
        """Create a consultation note and return it with its id."""
        document = data.model_dump(mode="json")
        document["created_at"] = datetime.now(UTC).isoformat()

        consultation_id = await self.store.add(self.COLLECTION, document)
        logger.info(
            "consultation_created",
            consultation_id=consultation_id,
            appointment_id=data.appointment_id,
        )
        return Consultation.model_validate({"id": consultation_id, **document})

    async def get(self, consultation_id: str) -> Consultation:
        document = await self.store.get(self.COLLECTION, consultation_id)
        if document is None:
            raise NotFoundException("Consultation not found")
        return Consultation.model_validate(document)

    async def update(self, consultation_id: str, data: ConsultationUpdate) -> Consultation:
        """
        Update a consultation note.

        Raises:
            NotFoundException: If the consultation does not exist
        """
        await self.get(consultation_id)

        changes = data.changes()
        if changes:
            await self.store.update(self.COLLECTION, consultation_id, changes)
            logger.info(
                "consultation_updated", consultation_id=consultation_id, fields=sorted(changes)
            )
        return await self.get(consultation_id)

    async def get_by_appointment(self, appointment_id: str) -> Consultation | None:
        """Return the consultation filed for an appointment, if any."""
        documents = await self.store.query(
            self.COLLECTION, "appointment_id", "==", appointment_id, limit=1
        )
        if not documents:
            return None
        return Consultation.model_validate(documents[0])

    async def list_for_patient(self, patient_id: str) -> list[Consultation]:
        """List a patient's consultations, most recent visit first."""
        documents = await self.store.query(self.COLLECTION, "patient_id", "==", patient_id)
        items = [Consultation.model_validate(document) for document in documents]
        return sorted(items, key=lambda consultation: consultation.date, reverse=True)
