"""
Scheduling workflow.

Ties the record manager, the calendar bridge and notifications together
the way the agenda uses them. Writes and calendar pushes are separate
round-trips with no transaction between them: when the record is saved but
the push (or the follow-up write of the event id) fails, the failure is
logged and the saved record is kept as is.
"""

import structlog

from medilink.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from medilink.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentEdit,
    AppointmentScheduleRequest,
    AppointmentStatus,
    AppointmentUpdate,
    ClinicianIdentity,
)
from medilink.schemas.consultations import Consultation, ConsultationCreate, ConsultationNote
from medilink.services.appointment_service import AppointmentService
from medilink.services.calendar_service import GoogleCalendarService
from medilink.services.consultation_service import ConsultationService
from medilink.services.notification_service import EmailNotificationService
from medilink.services.patient_service import PatientService
from medilink.services.recurrence import expand

logger = structlog.get_logger(__name__)


class SchedulingService:
    """Create, edit, cancel, delete and complete a clinician's appointments."""

    def __init__(
        self,
        appointments: AppointmentService,
        calendar: GoogleCalendarService,
        patients: PatientService,
        consultations: ConsultationService,
        notifications: EmailNotificationService,
    ):
        self.appointments = appointments
        self.calendar = calendar
        self.patients = patients
        self.consultations = consultations
        self.notifications = notifications

    async def get_owned(self, appointment_id: str, clinician_id: str) -> Appointment:
        """
        Get an appointment that belongs to the clinician.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If it belongs to another clinician
        """
        appointment = await self.appointments.get(appointment_id)
        if appointment.doctor_id != clinician_id:
            raise ForbiddenException("Access denied to this appointment")
        return appointment

    async def schedule(
        self,
        clinician: ClinicianIdentity,
        request: AppointmentScheduleRequest,
    ) -> list[Appointment]:
        """
        Book one appointment, or a recurring series when requested.

        Each instance is an independent record: created, announced to the
        patient by email, then mirrored to the calendar.

        Raises:
            ValidationException: If the selected patient does not exist
        """
        try:
            patient = await self.patients.get_patient(request.patient_id)
        except NotFoundException:
            raise ValidationException("Please select a patient")

        template = AppointmentCreate(
            patient_id=patient.id,
            patient_name=patient.full_name,
            patient_email=patient.email,
            patient_phone=patient.phone,
            doctor_id=clinician.uid,
            doctor_email=clinician.email or "",
            title=request.title or f"Consultation with {patient.full_name}",
            type=request.type,
            start=request.start,
            end=request.end,
            description=request.description,
            status=request.status,
        )

        if request.recurrence is not None:
            instances = expand(template, request.recurrence.frequency, request.recurrence.count)
        else:
            instances = [template]

        created = []
        for instance in instances:
            appointment = await self.appointments.create(instance)
            await self.notifications.send_appointment_confirmation(appointment)
            created.append(await self._sync(appointment))

        logger.info(
            "appointments_scheduled",
            doctor_id=clinician.uid,
            patient_id=patient.id,
            count=len(created),
            recurrence=request.recurrence.frequency.value if request.recurrence else None,
        )
        return created

    async def edit(
        self,
        appointment_id: str,
        clinician_id: str,
        data: AppointmentEdit,
    ) -> Appointment:
        """
        Apply an edit and re-sync the mirrored event. Never expands recurrence.

        Raises:
            ValidationException: If the merged interval ends before it starts
        """
        current = await self.get_owned(appointment_id, clinician_id)

        start = data.start or current.start
        end = data.end or current.end
        if end <= start:
            raise ValidationException("End time must be after start time")

        update = AppointmentUpdate.model_validate(data.model_dump(exclude_unset=True))
        updated = await self.appointments.update(appointment_id, update)
        return await self._sync(updated)

    async def set_status(
        self,
        appointment_id: str,
        clinician_id: str,
        status: AppointmentStatus,
    ) -> Appointment:
        """
        Change the lifecycle status. Any transition is allowed.

        A mirrored event, when one exists, is re-pushed so it reflects a
        cancellation.
        """
        await self.get_owned(appointment_id, clinician_id)
        return await self._apply_status(appointment_id, status)

    async def get_for_patient(self, appointment_id: str, patient_id: str) -> Appointment:
        """
        Get an appointment booked for the patient.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If it was booked for someone else
        """
        appointment = await self.appointments.get(appointment_id)
        if appointment.patient_id != patient_id:
            raise ForbiddenException("Access denied to this appointment")
        return appointment

    async def confirm(self, appointment_id: str, patient_id: str) -> Appointment:
        """Patient confirms attendance from the confirmation page."""
        await self.get_for_patient(appointment_id, patient_id)
        return await self._apply_status(appointment_id, AppointmentStatus.CONFIRMED)

    async def cancel(self, appointment_id: str, patient_id: str) -> Appointment:
        """Patient cancels from the confirmation page."""
        await self.get_for_patient(appointment_id, patient_id)
        return await self._apply_status(appointment_id, AppointmentStatus.CANCELLED)

    async def _apply_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        updated = await self.appointments.update(appointment_id, AppointmentUpdate(status=status))
        if updated.google_event_id:
            updated = await self._sync(updated)
        logger.info("appointment_status_changed", appointment_id=appointment_id, status=status.value)
        return updated

    async def delete(self, appointment_id: str, clinician_id: str) -> None:
        """Remove the mirrored event first, then the record holding its id."""
        appointment = await self.get_owned(appointment_id, clinician_id)

        if appointment.google_event_id:
            try:
                await self.calendar.remove(appointment.google_event_id, appointment.doctor_id)
            except Exception as e:
                logger.error(
                    "calendar_remove_failed_before_delete",
                    appointment_id=appointment_id,
                    google_event_id=appointment.google_event_id,
                    error=str(e),
                )

        await self.appointments.delete(appointment_id)

    async def complete(
        self,
        appointment_id: str,
        clinician_id: str,
        note: ConsultationNote,
    ) -> Consultation:
        """
        File the consultation note and mark the appointment completed.

        Raises:
            ConflictException: If a consultation was already filed
        """
        appointment = await self.get_owned(appointment_id, clinician_id)

        if await self.consultations.get_by_appointment(appointment_id) is not None:
            raise ConflictException("A consultation was already filed for this appointment")

        consultation = await self.consultations.create(
            ConsultationCreate(
                appointment_id=appointment_id,
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
                date=note.date or appointment.start,
                observations=note.observations,
                exams=note.exams,
                medications=note.medications,
            )
        )
        await self.appointments.update(
            appointment_id, AppointmentUpdate(status=AppointmentStatus.COMPLETED)
        )
        return consultation

    async def _sync(self, appointment: Appointment) -> Appointment:
        """Push to the calendar and store a newly assigned event id."""
        try:
            event_id = await self.calendar.push(appointment)
        except Exception as e:
            logger.error(
                "calendar_push_failed_after_save",
                appointment_id=appointment.id,
                error=str(e),
            )
            return appointment

        if not event_id or event_id == appointment.google_event_id:
            return appointment

        try:
            return await self.appointments.update(
                appointment.id, AppointmentUpdate(google_event_id=event_id)
            )
        except Exception as e:
            # The event exists in the calendar but the record does not know it.
            logger.error(
                "calendar_event_id_not_saved",
                appointment_id=appointment.id,
                google_event_id=event_id,
                error=str(e),
            )
            return appointment
