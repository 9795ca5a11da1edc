import copy
import itertools
import json
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from google.api_core.exceptions import NotFound
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file
load_dotenv()

from medilink.config import Settings
from medilink.core.calendar_tokens import InMemoryCalendarTokenProvider
from medilink.core.document_store import Document, DocumentStore
from medilink.dependencies import (
    get_calendar_service,
    get_current_clinician,
    get_current_user,
    get_document_store,
    get_notification_service,
    get_patient_service,
    get_token_provider,
)
from medilink.main import app
from medilink.schemas.appointments import ClinicianIdentity, UserIdentity
from medilink.schemas.patients import PATIENT_ROLE
from medilink.services.appointment_service import AppointmentService
from medilink.services.calendar_service import GoogleCalendarService
from medilink.services.consultation_service import ConsultationService
from medilink.services.notification_service import EmailNotificationService
from medilink.services.patient_service import PatientService
from medilink.services.scheduling_service import SchedulingService

CLINICIAN_ID = "doctor-uid-1"
CLINICIAN_EMAIL = "house@clinic.example.org"
CALENDAR_API = "https://calendar.test/v3"


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed DocumentStore with Firestore's error behaviour for updates."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Document]] = {}
        self.calls: list[tuple[str, str, str | None]] = []
        self._ids = itertools.count(1)

    def _collection(self, name: str) -> dict[str, Document]:
        return self.collections.setdefault(name, {})

    async def add(self, collection: str, data: Document) -> str:
        doc_id = f"{collection}-{next(self._ids)}"
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        self.calls.append(("add", collection, doc_id))
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        self.calls.append(("set", collection, doc_id))

    async def get(self, collection: str, doc_id: str) -> Document | None:
        document = self._collection(collection).get(doc_id)
        if document is None:
            return None
        return {"id": doc_id, **copy.deepcopy(document)}

    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        documents = self._collection(collection)
        if doc_id not in documents:
            raise NotFound(f"No document to update: {collection}/{doc_id}")
        documents[doc_id].update(copy.deepcopy(data))
        self.calls.append(("update", collection, doc_id))

    async def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)
        self.calls.append(("delete", collection, doc_id))

    async def query(
        self,
        collection: str,
        field: str,
        op: str,
        value: Any,
        limit: int | None = None,
    ) -> list[Document]:
        assert op == "==", "only equality queries are used"
        matches = [
            {"id": doc_id, **copy.deepcopy(document)}
            for doc_id, document in self._collection(collection).items()
            if document.get(field) == value
        ]
        return matches[:limit] if limit is not None else matches


class FakeGoogleCalendar:
    """Minimal Google Calendar events API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.events: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None
        self._ids = itertools.count(1)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(
                self.fail_with, json={"error": {"code": self.fail_with, "message": "Backend Error"}}
            )

        prefix = f"{CALENDAR_API}/calendars/primary/events"
        url = str(request.url)
        assert url.startswith(prefix)
        event_id = url[len(prefix) :].lstrip("/") or None

        if request.method == "POST":
            new_id = f"evt{next(self._ids)}"
            self.events[new_id] = json.loads(request.content)
            return httpx.Response(200, json={"id": new_id, **self.events[new_id]})
        if event_id not in self.events:
            return httpx.Response(404, json={"error": {"code": 404, "message": "Not Found"}})
        if request.method == "PUT":
            self.events[event_id] = json.loads(request.content)
            return httpx.Response(200, json={"id": event_id, **self.events[event_id]})
        if request.method == "DELETE":
            del self.events[event_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def methods(self) -> list[str]:
        return [request.method for request in self.requests]


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at the fake calendar, with email delivery unconfigured."""
    return Settings(
        GOOGLE_CALENDAR_API_URL=CALENDAR_API,
        GOOGLE_CLIENT_ID="test-client-id",
        CALENDAR_TIME_ZONE="America/Lima",
        CALENDAR_TOKEN_BACKEND="memory",
        EMAIL_DELIVERY="emailjs",
        EMAILJS_SERVICE_ID="",
        EMAILJS_TEMPLATE_ID="",
        EMAILJS_PUBLIC_KEY="",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def token_provider() -> InMemoryCalendarTokenProvider:
    return InMemoryCalendarTokenProvider()


@pytest.fixture
def connected(token_provider: InMemoryCalendarTokenProvider) -> InMemoryCalendarTokenProvider:
    """Token provider holding a valid token for the test clinician."""
    token_provider.store_token(CLINICIAN_ID, "ya29.test-token", 3600)
    return token_provider


@pytest.fixture
def google_calendar() -> FakeGoogleCalendar:
    return FakeGoogleCalendar()


@pytest_asyncio.fixture
async def calendar_service(
    token_provider: InMemoryCalendarTokenProvider,
    google_calendar: FakeGoogleCalendar,
    test_settings: Settings,
) -> AsyncGenerator[GoogleCalendarService, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(google_calendar.handler)) as client:
        yield GoogleCalendarService(token_provider, http_client=client, settings=test_settings)


@pytest.fixture
def appointment_service(store: InMemoryDocumentStore) -> AppointmentService:
    return AppointmentService(store)


@pytest.fixture
def consultation_service(store: InMemoryDocumentStore) -> ConsultationService:
    return ConsultationService(store)


@pytest.fixture
def created_accounts() -> list[str]:
    return []


@pytest.fixture
def patient_service(store: InMemoryDocumentStore, created_accounts: list[str]) -> PatientService:
    def create_account(email: str, password: str, display_name: str | None) -> str:
        created_accounts.append(email)
        return f"patient-uid-{len(created_accounts)}"

    return PatientService(store, create_account=create_account)


@pytest.fixture
def notification_service(
    store: InMemoryDocumentStore, test_settings: Settings
) -> EmailNotificationService:
    return EmailNotificationService(store, settings=test_settings)


@pytest.fixture
def scheduling_service(
    appointment_service: AppointmentService,
    calendar_service: GoogleCalendarService,
    patient_service: PatientService,
    consultation_service: ConsultationService,
    notification_service: EmailNotificationService,
) -> SchedulingService:
    return SchedulingService(
        appointment_service,
        calendar_service,
        patient_service,
        consultation_service,
        notification_service,
    )


@pytest.fixture
def clinician() -> ClinicianIdentity:
    return ClinicianIdentity(uid=CLINICIAN_ID, email=CLINICIAN_EMAIL)


@pytest_asyncio.fixture
async def patient(store: InMemoryDocumentStore) -> dict:
    """Create a test patient in the directory."""
    patient_data = {
        "full_name": "Ana Torres",
        "email": "ana.torres@example.com",
        "phone": "+51 987 654 321",
        "address": "Av. Arequipa 123",
        "birth_date": "1990-04-12",
        "document_number": "45678912",
        "role": PATIENT_ROLE,
        "created_at": datetime(2025, 1, 2, tzinfo=UTC).isoformat(),
    }
    await store.set("users", "patient-ana", patient_data)
    return {"id": "patient-ana", **patient_data}


@pytest.fixture
def sample_schedule_data(patient: dict) -> dict:
    """Sample scheduling payload for the test patient."""
    return {
        "patient_id": patient["id"],
        "title": "Annual checkup",
        "type": "general_consultation",
        "start": "2025-03-10T09:00:00-05:00",
        "end": "2025-03-10T09:30:00-05:00",
        "description": "Bring previous lab results",
    }


@pytest_asyncio.fixture
async def client(
    store: InMemoryDocumentStore,
    token_provider: InMemoryCalendarTokenProvider,
    calendar_service: GoogleCalendarService,
    patient_service: PatientService,
    notification_service: EmailNotificationService,
    clinician: ClinicianIdentity,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client signed in as the test clinician."""
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_token_provider] = lambda: token_provider
    app.dependency_overrides[get_calendar_service] = lambda: calendar_service
    app.dependency_overrides[get_patient_service] = lambda: patient_service
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    app.dependency_overrides[get_current_clinician] = lambda: clinician

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anonymous_client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without authentication overrides."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def patient_client(
    store: InMemoryDocumentStore,
    token_provider: InMemoryCalendarTokenProvider,
    calendar_service: GoogleCalendarService,
    patient_service: PatientService,
    notification_service: EmailNotificationService,
    patient: dict,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client signed in as the test patient."""
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_token_provider] = lambda: token_provider
    app.dependency_overrides[get_calendar_service] = lambda: calendar_service
    app.dependency_overrides[get_patient_service] = lambda: patient_service
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    app.dependency_overrides[get_current_user] = lambda: UserIdentity(
        uid=patient["id"], email=patient["email"]
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
