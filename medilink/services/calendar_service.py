"""
Google Calendar service.

Mirrors appointments into the clinician's Google Calendar. The calendar is
a convenience copy; the appointment record stays the system of record.
"""

from typing import Any

import httpx
import structlog

from medilink.config import Settings, settings as default_settings
from medilink.core.calendar_tokens import CalendarTokenProvider
from medilink.core.exceptions import CalendarSyncException
from medilink.schemas.appointments import Appointment, AppointmentStatus, AppointmentType

logger = structlog.get_logger(__name__)

# Google palette ids: 5 Banana, 7 Peacock, 10 Basil, 11 Tomato.
# Hand-kept alongside APPOINTMENT_COLORS in schemas.appointments.
GOOGLE_COLOR_IDS: dict[AppointmentType, str] = {
    AppointmentType.GENERAL_CONSULTATION: "7",
    AppointmentType.SURGERY: "11",
    AppointmentType.VACCINATION: "10",
    AppointmentType.EXEMPTED: "5",
}
DEFAULT_COLOR_ID = "1"


def build_event(appointment: Appointment, time_zone: str) -> dict[str, Any]:
    """Build the Calendar API event body for an appointment."""
    appointment_type = AppointmentType(appointment.type)
    cancelled = appointment.status == AppointmentStatus.CANCELLED
    return {
        "summary": f"{appointment.title} ({appointment_type.value.upper()})",
        "description": f"{appointment.description or ''}\n\nType: {appointment_type.value}",
        "colorId": GOOGLE_COLOR_IDS.get(appointment_type, DEFAULT_COLOR_ID),
        "status": "cancelled" if cancelled else "confirmed",
        "start": {
            "dateTime": appointment.start.isoformat(),
            "timeZone": time_zone,
        },
        "end": {
            "dateTime": appointment.end.isoformat(),
            "timeZone": time_zone,
        },
    }


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return fallback


class GoogleCalendarService:
    """Push and remove mirrored events in Google Calendar."""

    def __init__(
        self,
        token_provider: CalendarTokenProvider,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize service.

        Args:
            token_provider: Source of per-clinician bearer tokens
            http_client: Client to reuse; a short-lived one is opened per call otherwise
            settings: Application settings
        """
        self.token_provider = token_provider
        self.http_client = http_client
        self.settings = settings or default_settings

    def _events_url(self, event_id: str | None = None) -> str:
        base = (
            f"{self.settings.google_calendar_api_url}"
            f"/calendars/{self.settings.google_calendar_id}/events"
        )
        return f"{base}/{event_id}" if event_id else base

    async def _send(self, method: str, url: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"}
        if self.http_client is not None:
            return await self.http_client.request(method, url, headers=headers, **kwargs)
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, headers=headers, **kwargs)

    async def push(self, appointment: Appointment, time_zone: str | None = None) -> str | None:
        """
        Create or update the mirrored event for an appointment.

        Updates when the appointment already carries a ``google_event_id``,
        creates otherwise. The caller must persist the returned id on the
        appointment; that second write is not part of this call.

        Returns:
            The Google event id, or None when the clinician has no valid token

        Raises:
            CalendarSyncException: If the Calendar API rejects the request
        """
        token = self.token_provider.get_access_token(appointment.doctor_id)
        if not token:
            logger.warning(
                "calendar_sync_skipped",
                reason="no_valid_token",
                appointment_id=appointment.id,
                doctor_id=appointment.doctor_id,
            )
            return None

        event = build_event(appointment, time_zone or self.settings.calendar_time_zone)
        existing_id = appointment.google_event_id
        method = "PUT" if existing_id else "POST"

        response = await self._send(method, self._events_url(existing_id), token, json=event)
        if not response.is_success:
            message = _error_message(response, f"Failed to {method} event in Google Calendar")
            logger.error(
                "calendar_push_failed",
                appointment_id=appointment.id,
                method=method,
                status_code=response.status_code,
                error=message,
            )
            raise CalendarSyncException(message, upstream_status=response.status_code)

        event_id = response.json().get("id") or existing_id
        logger.info(
            "calendar_event_updated" if existing_id else "calendar_event_created",
            appointment_id=appointment.id,
            google_event_id=event_id,
        )
        return event_id

    async def remove(self, google_event_id: str, clinician_id: str) -> None:
        """
        Delete a mirrored event.

        An event that is already gone (404/410) counts as removed.

        Raises:
            CalendarSyncException: For any other rejection
        """
        token = self.token_provider.get_access_token(clinician_id)
        if not token:
            logger.warning(
                "calendar_remove_skipped",
                reason="no_valid_token",
                google_event_id=google_event_id,
                doctor_id=clinician_id,
            )
            return

        response = await self._send("DELETE", self._events_url(google_event_id), token)
        if response.status_code in (404, 410):
            logger.info("calendar_event_already_removed", google_event_id=google_event_id)
            return
        if not response.is_success:
            message = _error_message(response, "Failed to delete event from Google Calendar")
            logger.error(
                "calendar_remove_failed",
                google_event_id=google_event_id,
                status_code=response.status_code,
                error=message,
            )
            raise CalendarSyncException(message, upstream_status=response.status_code)

        logger.info("calendar_event_removed", google_event_id=google_event_id)
