"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from medilink.config import settings
from medilink.core.calendar_tokens import CalendarTokenProvider, create_token_provider
from medilink.core.document_store import DocumentStore, FirestoreDocumentStore
from medilink.core.exceptions import NotFoundException
from medilink.core.firebase import get_firestore_client, verify_firebase_token
from medilink.schemas.appointments import ClinicianIdentity, UserIdentity
from medilink.schemas.patients import Patient
from medilink.services.appointment_service import AppointmentService
from medilink.services.calendar_service import GoogleCalendarService
from medilink.services.consultation_service import ConsultationService
from medilink.services.notification_service import EmailNotificationService
from medilink.services.patient_service import PatientService
from medilink.services.scheduling_service import SchedulingService

# Security
security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UserIdentity:
    """
    Verify the Firebase ID token and return the signed-in user.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        decoded = await verify_firebase_token(credentials.credentials)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = decoded.get("uid")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return UserIdentity(uid=uid, email=decoded.get("email"))


CurrentUser = Annotated[UserIdentity, Depends(get_current_user)]


async def get_current_clinician(user: CurrentUser) -> ClinicianIdentity:
    return ClinicianIdentity(**user.model_dump())


def get_document_store() -> DocumentStore:
    """Firestore-backed document store."""
    return FirestoreDocumentStore(get_firestore_client())


@lru_cache
def get_token_provider() -> CalendarTokenProvider:
    """Process-wide calendar token provider."""
    return create_token_provider(settings)


DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]
TokenProviderDep = Annotated[CalendarTokenProvider, Depends(get_token_provider)]


def get_appointment_service(store: DocumentStoreDep) -> AppointmentService:
    return AppointmentService(store)


def get_consultation_service(store: DocumentStoreDep) -> ConsultationService:
    return ConsultationService(store)


def get_patient_service(store: DocumentStoreDep) -> PatientService:
    return PatientService(store)


def get_calendar_service(token_provider: TokenProviderDep) -> GoogleCalendarService:
    return GoogleCalendarService(token_provider)


def get_notification_service(store: DocumentStoreDep) -> EmailNotificationService:
    return EmailNotificationService(store)


def get_scheduling_service(
    appointments: Annotated[AppointmentService, Depends(get_appointment_service)],
    calendar: Annotated[GoogleCalendarService, Depends(get_calendar_service)],
    patients: Annotated[PatientService, Depends(get_patient_service)],
    consultations: Annotated[ConsultationService, Depends(get_consultation_service)],
    notifications: Annotated[EmailNotificationService, Depends(get_notification_service)],
) -> SchedulingService:
    """Assemble the scheduling workflow for one request."""
    return SchedulingService(appointments, calendar, patients, consultations, notifications)


# Type aliases for dependency injection
CurrentClinician = Annotated[ClinicianIdentity, Depends(get_current_clinician)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
ConsultationServiceDep = Annotated[ConsultationService, Depends(get_consultation_service)]
PatientServiceDep = Annotated[PatientService, Depends(get_patient_service)]
SchedulingServiceDep = Annotated[SchedulingService, Depends(get_scheduling_service)]


async def get_current_patient(user: CurrentUser, patients: PatientServiceDep) -> Patient:
    """
    Resolve the signed-in user to their patient directory entry.

    Raises:
        HTTPException: If the user is not a registered patient
    """
    try:
        return await patients.get_patient(user.uid)
    except NotFoundException:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Patient access required",
        )


CurrentPatient = Annotated[Patient, Depends(get_current_patient)]
