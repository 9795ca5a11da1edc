"""Patient portal endpoints: a patient's own appointments and confirmation page."""

from fastapi import APIRouter, status

from medilink.dependencies import AppointmentServiceDep, CurrentPatient, SchedulingServiceDep
from medilink.schemas.appointments import Appointment

router = APIRouter()


@router.get(
    "/appointments",
    response_model=list[Appointment],
    status_code=status.HTTP_200_OK,
    tags=["Patient Portal"],
    summary="List my appointments",
)
async def list_my_appointments(
    current_patient: CurrentPatient,
    appointments: AppointmentServiceDep,
) -> list[Appointment]:
    """List the signed-in patient's appointments, most recent first."""
    return await appointments.list_for_patient(current_patient.id)


@router.get(
    "/appointments/{appointment_id}",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Patient Portal"],
    summary="Get my appointment",
)
async def get_my_appointment(
    appointment_id: str,
    current_patient: CurrentPatient,
    scheduling: SchedulingServiceDep,
) -> Appointment:
    return await scheduling.get_for_patient(appointment_id, current_patient.id)


@router.post(
    "/appointments/{appointment_id}/confirm",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Patient Portal"],
    summary="Confirm my appointment",
)
async def confirm_my_appointment(
    appointment_id: str,
    current_patient: CurrentPatient,
    scheduling: SchedulingServiceDep,
) -> Appointment:
    """Confirm attendance. The clinician's calendar event is updated when one exists."""
    return await scheduling.confirm(appointment_id, current_patient.id)


@router.post(
    "/appointments/{appointment_id}/cancel",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Patient Portal"],
    summary="Cancel my appointment",
)
async def cancel_my_appointment(
    appointment_id: str,
    current_patient: CurrentPatient,
    scheduling: SchedulingServiceDep,
) -> Appointment:
    """
    Cancel an appointment.

    Raises:
        NotFoundException: If appointment not found
        ForbiddenException: If it was booked for someone else
    """
    return await scheduling.cancel(appointment_id, current_patient.id)
