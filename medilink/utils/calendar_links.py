"""Add-to-calendar links and .ics invite text for appointments."""

from datetime import UTC, datetime
from urllib.parse import quote, urlencode

PRODID = "-//MediLink//NONSGML v1.0//EN"


def _utc_stamp(moment: datetime) -> str:
    """Format as a UTC basic-format timestamp, e.g. 20250131T090000Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def google_calendar_link(title: str, description: str, start: datetime, end: datetime) -> str:
    """Link that opens a prefilled event in Google Calendar."""
    params = {
        "action": "TEMPLATE",
        "text": title,
        "details": description,
        "dates": f"{_utc_stamp(start)}/{_utc_stamp(end)}",
    }
    return f"https://www.google.com/calendar/render?{urlencode(params, quote_via=quote, safe='/')}"


def outlook_calendar_link(title: str, description: str, start: datetime, end: datetime) -> str:
    """Link that opens a prefilled event in Outlook on the web."""
    params = {
        "path": "/calendar/action/compose",
        "rru": "addevent",
        "subject": title,
        "body": description,
        "startdt": start.astimezone(UTC).isoformat(),
        "enddt": end.astimezone(UTC).isoformat(),
    }
    return (
        "https://outlook.live.com/calendar/0/deeplink/compose?"
        f"{urlencode(params, quote_via=quote, safe='/:')}"
    )


def _escape(text: str) -> str:
    # RFC 5545 TEXT escaping
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def ics_content(
    title: str,
    description: str,
    start: datetime,
    end: datetime,
    now: datetime | None = None,
    uid: str | None = None,
) -> str:
    """Build a single-event VCALENDAR document with CRLF line endings."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "BEGIN:VEVENT",
    ]
    if uid:
        lines.append(f"UID:{uid}")
    lines += [
        f"DTSTAMP:{_utc_stamp(now or datetime.now(UTC))}",
        f"DTSTART:{_utc_stamp(start)}",
        f"DTEND:{_utc_stamp(end)}",
        f"SUMMARY:{_escape(title)}",
        f"DESCRIPTION:{_escape(description)}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)
