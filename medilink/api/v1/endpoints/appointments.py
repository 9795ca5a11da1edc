"""Appointment endpoints."""

from fastapi import APIRouter, Response, status

from medilink.core.exceptions import NotFoundException
from medilink.dependencies import (
    AppointmentServiceDep,
    ConsultationServiceDep,
    CurrentClinician,
    SchedulingServiceDep,
)
from medilink.schemas.appointments import (
    Appointment,
    AppointmentEdit,
    AppointmentScheduleRequest,
    AppointmentStatusUpdate,
)
from medilink.schemas.consultations import Consultation, ConsultationNote
from medilink.utils.calendar_links import ics_content

router = APIRouter()


@router.post(
    "/",
    response_model=list[Appointment],
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Schedule appointment",
)
async def schedule_appointment(
    data: AppointmentScheduleRequest,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> list[Appointment]:
    """
    Schedule an appointment for the signed-in clinician.

    With a recurrence rule, every instance of the series is created and
    returned, first instance first.
    """
    return await scheduling.schedule(current_clinician, data)


@router.get(
    "/",
    response_model=list[Appointment],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List agenda",
)
async def list_appointments(
    current_clinician: CurrentClinician,
    appointments: AppointmentServiceDep,
) -> list[Appointment]:
    """List the clinician's appointments, soonest first."""
    return await appointments.list_for_clinician(current_clinician.uid)


@router.get(
    "/{appointment_id}",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: str,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> Appointment:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
        ForbiddenException: If it belongs to another clinician
    """
    return await scheduling.get_owned(appointment_id, current_clinician.uid)


@router.put(
    "/{appointment_id}",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Edit appointment",
)
async def edit_appointment(
    appointment_id: str,
    data: AppointmentEdit,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> Appointment:
    """Edit an appointment and re-sync its calendar event."""
    return await scheduling.edit(appointment_id, current_clinician.uid, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> Appointment:
    """Update appointment status (e.g., confirm, cancel)."""
    return await scheduling.set_status(appointment_id, current_clinician.uid, data.status)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: str,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> None:
    """Delete an appointment permanently, removing its calendar event first."""
    await scheduling.delete(appointment_id, current_clinician.uid)


@router.get(
    "/{appointment_id}/invite.ics",
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Download calendar invite",
    response_class=Response,
)
async def download_invite(
    appointment_id: str,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> Response:
    """Return the appointment as an .ics file."""
    appointment = await scheduling.get_owned(appointment_id, current_clinician.uid)
    content = ics_content(
        appointment.title,
        appointment.description,
        appointment.start,
        appointment.end,
        uid=f"{appointment.id}@medilink",
    )
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="appointment.ics"'},
    )


@router.post(
    "/{appointment_id}/consultation",
    response_model=Consultation,
    status_code=status.HTTP_201_CREATED,
    tags=["Consultations"],
    summary="Complete appointment with a consultation",
)
async def complete_appointment(
    appointment_id: str,
    data: ConsultationNote,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
) -> Consultation:
    """File the consultation note and mark the appointment completed."""
    return await scheduling.complete(appointment_id, current_clinician.uid, data)


@router.get(
    "/{appointment_id}/consultation",
    response_model=Consultation,
    status_code=status.HTTP_200_OK,
    tags=["Consultations"],
    summary="Get consultation for appointment",
)
async def get_appointment_consultation(
    appointment_id: str,
    current_clinician: CurrentClinician,
    scheduling: SchedulingServiceDep,
    consultations: ConsultationServiceDep,
) -> Consultation:
    """Get the consultation filed for an appointment."""
    await scheduling.get_owned(appointment_id, current_clinician.uid)
    consultation = await consultations.get_by_appointment(appointment_id)
    if consultation is None:
        raise NotFoundException("Consultation not found")
    return consultation
