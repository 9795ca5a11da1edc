"""Notification service for appointment confirmation emails."""

from html import escape
from typing import Any
from zoneinfo import ZoneInfo

import httpx
import structlog

from medilink.config import Settings, settings as default_settings
from medilink.core.document_store import DocumentStore
from medilink.schemas.appointments import Appointment
from medilink.utils.calendar_links import google_calendar_link

logger = structlog.get_logger(__name__)

DEFAULT_DESCRIPTION = "General Checkup"


class EmailNotificationService:
    """
    Send the patient a confirmation when an appointment is booked.

    Delivery is fire-and-forget: failures are logged and never raised.
    """

    def __init__(
        self,
        store: DocumentStore,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        """Initialize service with a document store and optional HTTP client."""
        self.store = store
        self.http_client = http_client
        self.settings = settings or default_settings

    def template_params(self, appointment: Appointment) -> dict[str, str]:
        """Build the template variables for the confirmation email."""
        local_start = appointment.start.astimezone(ZoneInfo(self.settings.calendar_time_zone))
        description = appointment.description or DEFAULT_DESCRIPTION
        return {
            "patient_name": appointment.patient_name,
            "patient_email": appointment.patient_email,
            "notification_emails": appointment.patient_email,
            "appointment_title": appointment.title,
            "appointment_date": local_start.strftime("%Y-%m-%d"),
            "appointment_time": local_start.strftime("%H:%M"),
            "appointment_description": description,
            "calendar_link": google_calendar_link(
                appointment.title, description, appointment.start, appointment.end
            ),
        }

    async def send_appointment_confirmation(self, appointment: Appointment) -> bool:
        """
        Send the confirmation email for a booked appointment.

        Returns:
            True if the message was accepted for delivery, False otherwise
        """
        if not appointment.patient_email:
            logger.warning("confirmation_email_skipped", reason="no_patient_email")
            return False

        try:
            params = self.template_params(appointment)
            if self.settings.email_delivery == "collection":
                await self._enqueue_mail_document(params)
            elif self.settings.emailjs_configured:
                await self._send_via_emailjs(params)
            else:
                logger.warning(
                    "confirmation_email_skipped",
                    reason="emailjs_not_configured",
                    appointment_id=appointment.id,
                )
                return False
        except Exception as e:
            logger.error(
                "confirmation_email_failed",
                appointment_id=appointment.id,
                delivery=self.settings.email_delivery,
                error=str(e),
            )
            return False

        logger.info(
            "confirmation_email_sent",
            appointment_id=appointment.id,
            delivery=self.settings.email_delivery,
        )
        return True

    async def _send_via_emailjs(self, params: dict[str, str]) -> None:
        payload: dict[str, Any] = {
            "service_id": self.settings.emailjs_service_id,
            "template_id": self.settings.emailjs_template_id,
            "user_id": self.settings.emailjs_public_key,
            "template_params": params,
        }
        if self.http_client is not None:
            response = await self.http_client.post(self.settings.emailjs_api_url, json=payload)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self.settings.emailjs_api_url, json=payload)
        response.raise_for_status()

    async def _enqueue_mail_document(self, params: dict[str, str]) -> None:
        # Picked up by the Firebase "Trigger Email" extension
        html = (
            f"<p>Hello {escape(params['patient_name'])},</p>"
            f"<p>Your appointment <strong>{escape(params['appointment_title'])}</strong> "
            f"is booked for {params['appointment_date']} at {params['appointment_time']}.</p>"
            f"<p>{escape(params['appointment_description'])}</p>"
            f'<p><a href="{escape(params["calendar_link"])}">Add to Google Calendar</a></p>'
        )
        await self.store.add(
            self.settings.mail_collection,
            {
                "to": [params["patient_email"]],
                "message": {
                    "subject": f"Appointment confirmed: {params['appointment_title']}",
                    "html": html,
                },
            },
        )
