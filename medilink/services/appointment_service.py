"""Appointment service for business logic."""

from datetime import UTC, datetime

import structlog

from medilink.core.document_store import DocumentStore
from medilink.core.exceptions import NotFoundException
from medilink.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    color_for,
)

logger = structlog.get_logger(__name__)


class AppointmentService:
    """
    Service for managing appointment records.

    Lists are sorted in memory after retrieval so the store needs no
    composite index. Store errors are logged and re-raised unchanged;
    there is no retry and no concurrency check, so concurrent updates to
    one record are last-write-wins.
    """

    COLLECTION = "appointments"

    def __init__(self, store: DocumentStore):
        """Initialize service with a document store."""
        self.store = store

    async def create(self, data: AppointmentCreate) -> Appointment:
        """
        Create a new appointment.

        Args:
            data: Appointment creation data

        Returns:
            Stored appointment including its assigned id
        """
        document = data.model_dump(mode="json")
        document["color"] = color_for(data.type)
        document["created_at"] = datetime.now(UTC).isoformat()

        try:
            appointment_id = await self.store.add(self.COLLECTION, document)
        except Exception as e:
            logger.error("appointment_create_failed", error=str(e))
            raise

        logger.info(
            "appointment_created",
            appointment_id=appointment_id,
            doctor_id=data.doctor_id,
            patient_id=data.patient_id,
        )
        return Appointment.model_validate({"id": appointment_id, **document})

    async def get(self, appointment_id: str) -> Appointment:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        document = await self.store.get(self.COLLECTION, appointment_id)
        if document is None:
            raise NotFoundException("Appointment not found")
        return Appointment.model_validate(document)

    async def list_for_clinician(self, doctor_id: str) -> list[Appointment]:
        """List a clinician's appointments, soonest first."""
        items = await self._list_by("doctor_id", doctor_id)
        return sorted(items, key=lambda appointment: appointment.start)

    async def list_for_patient(self, patient_id: str) -> list[Appointment]:
        """List a patient's appointments, most recent first."""
        items = await self._list_by("patient_id", patient_id)
        return sorted(items, key=lambda appointment: appointment.start, reverse=True)

    async def _list_by(self, field: str, value: str) -> list[Appointment]:
        try:
            documents = await self.store.query(self.COLLECTION, field, "==", value)
        except Exception as e:
            logger.error("appointment_list_failed", field=field, error=str(e))
            raise
        return [Appointment.model_validate(document) for document in documents]

    async def update(self, appointment_id: str, data: AppointmentUpdate) -> Appointment:
        """
        Merge the explicitly set fields of ``data`` into a stored appointment.

        Args:
            appointment_id: Appointment ID
            data: Update data

        Returns:
            The merged appointment as re-read from the store
        """
        changes = data.changes()
        if data.type is not None:
            changes["color"] = color_for(data.type)

        if changes:
            try:
                await self.store.update(self.COLLECTION, appointment_id, changes)
            except Exception as e:
                logger.error(
                    "appointment_update_failed", appointment_id=appointment_id, error=str(e)
                )
                raise
            logger.info(
                "appointment_updated", appointment_id=appointment_id, fields=sorted(changes)
            )

        return await self.get(appointment_id)

    async def delete(self, appointment_id: str) -> None:
        """
        Delete an appointment permanently.

        Any mirrored calendar event must be removed by the caller first,
        since its id is only stored on this record.
        """
        try:
            await self.store.delete(self.COLLECTION, appointment_id)
        except Exception as e:
            logger.error("appointment_delete_failed", appointment_id=appointment_id, error=str(e))
            raise
        logger.info("appointment_deleted", appointment_id=appointment_id)
