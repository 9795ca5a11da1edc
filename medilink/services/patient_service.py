"""Patient directory service."""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from firebase_admin import auth

from medilink.core.document_store import DocumentStore
from medilink.core.exceptions import ConflictException, NotFoundException
from medilink.core.firebase import create_auth_user
from medilink.schemas.patients import PATIENT_ROLE, Patient, PatientCreate

logger = structlog.get_logger(__name__)


class PatientService:
    """Look up and register patients in the ``users`` collection."""

    COLLECTION = "users"

    def __init__(
        self,
        store: DocumentStore,
        create_account: Callable[[str, str, str | None], str] = create_auth_user,
    ):
        """
        Initialize service.

        Args:
            store: Document store
            create_account: Creates a sign-in account and returns its uid
        """
        self.store = store
        self.create_account = create_account

    async def list_patients(self) -> list[Patient]:
        """List every patient in the directory, by name."""
        documents = await self.store.query(self.COLLECTION, "role", "==", PATIENT_ROLE)
        patients = [Patient.model_validate(document) for document in documents]
        return sorted(patients, key=lambda patient: patient.full_name.lower())

    async def get_patient(self, patient_id: str) -> Patient:
        """
        Get a patient by uid.

        Raises:
            NotFoundException: If no patient has this uid
        """
        document = await self.store.get(self.COLLECTION, patient_id)
        if document is None or document.get("role") != PATIENT_ROLE:
            raise NotFoundException("Patient not found")
        return Patient.model_validate(document)

    async def create_patient(self, data: PatientCreate) -> Patient:
        """
        Register a patient: sign-in account first, then the directory entry.

        Raises:
            ConflictException: If the email already has an account
        """
        try:
            uid = self.create_account(data.email, data.password, data.full_name)
        except auth.EmailAlreadyExistsError:
            raise ConflictException("A user with this email already exists")

        document = data.model_dump(mode="json", exclude={"password"})
        document["role"] = PATIENT_ROLE
        document["created_at"] = datetime.now(UTC).isoformat()

        try:
            await self.store.set(self.COLLECTION, uid, document)
        except Exception as e:
            # The sign-in account exists without a directory entry.
            logger.error(
                "patient_profile_not_saved",
                patient_id=uid,
                email=data.email,
                error=str(e),
            )
            raise

        logger.info("patient_created", patient_id=uid)
        return Patient.model_validate({"id": uid, **document})
