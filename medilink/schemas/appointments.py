"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration. Any status may follow any other."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AppointmentType(str, Enum):
    """Appointment category enumeration."""

    GENERAL_CONSULTATION = "general_consultation"
    SURGERY = "surgery"
    VACCINATION = "vaccination"
    EXEMPTED = "exempted"


# Display colour per category. GOOGLE_COLOR_IDS in the calendar service holds
# the matching Google palette ids and must be kept in step with this table.
APPOINTMENT_COLORS: dict[AppointmentType, str] = {
    AppointmentType.GENERAL_CONSULTATION: "#3b82f6",
    AppointmentType.SURGERY: "#ef4444",
    AppointmentType.VACCINATION: "#10b981",
    AppointmentType.EXEMPTED: "#f59e0b",
}


def color_for(appointment_type: AppointmentType) -> str:
    """Return the display colour for a category."""
    return APPOINTMENT_COLORS[AppointmentType(appointment_type)]


class RecurrenceFrequency(str, Enum):
    """Recurrence cadence enumeration."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def require_aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        raise ValueError("Timestamp must include a timezone offset")
    return value


def reject_null(value: Any) -> Any:
    if value is None:
        raise ValueError("Field cannot be null")
    return value


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    title: str = Field(..., min_length=1, max_length=200)
    type: AppointmentType = AppointmentType.GENERAL_CONSULTATION
    start: datetime
    end: datetime
    description: str = Field(default="", max_length=2000)


class AppointmentCreate(AppointmentBase):
    """
    Record as handed to the record manager.

    Patient fields are copies taken at creation time, not live references.
    The interval is not validated here; see AppointmentScheduleRequest.
    """

    patient_id: str = Field(..., min_length=1)
    patient_name: str
    patient_email: str = ""
    patient_phone: str = ""
    doctor_id: str = Field(..., min_length=1)
    doctor_email: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    google_event_id: str | None = None


class Appointment(AppointmentCreate):
    """Stored appointment."""

    id: str
    color: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AppointmentEdit(BaseModel):
    """
    Partial edit request from the agenda.

    Only explicitly set fields are merged into the stored record, so
    leaving a field out never clears it.
    """

    title: str | None = Field(None, min_length=1, max_length=200)
    type: AppointmentType | None = None
    start: datetime | None = None
    end: datetime | None = None
    description: str | None = Field(None, max_length=2000)
    status: AppointmentStatus | None = None

    @field_validator("title", "type", "start", "end", "status", mode="before")
    @classmethod
    def validate_not_null(cls, v: Any) -> Any:
        """Fields the stored record requires may be omitted but not nulled."""
        return reject_null(v)

    @field_validator("description", mode="before")
    @classmethod
    def null_description_clears(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("start", "end")
    @classmethod
    def validate_aware(cls, v: datetime | None) -> datetime | None:
        """Require timezone-bearing instants."""
        return require_aware(v)

    @model_validator(mode="after")
    def validate_interval(self) -> "AppointmentEdit":
        """Reject an inverted interval when both ends are supplied."""
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self

    def changes(self) -> dict[str, Any]:
        """Return explicitly set fields in storable form."""
        return self.model_dump(mode="json", exclude_unset=True)


class AppointmentUpdate(AppointmentEdit):
    """Partial update as applied by the record manager, including sync bookkeeping."""

    google_event_id: str | None = None


class RecurrenceRule(BaseModel):
    """Recurrence requested at creation time."""

    frequency: RecurrenceFrequency
    count: int = Field(..., ge=2, le=24, description="Total number of appointments in the series")


class AppointmentScheduleRequest(AppointmentBase):
    """Schema for scheduling appointments from the clinician agenda."""

    title: str | None = Field(None, max_length=200)
    patient_id: str = Field(..., min_length=1)
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    recurrence: RecurrenceRule | None = None

    @field_validator("start", "end")
    @classmethod
    def validate_aware(cls, v: datetime) -> datetime:
        """Require timezone-bearing instants."""
        return require_aware(v)

    @model_validator(mode="after")
    def validate_interval(self) -> "AppointmentScheduleRequest":
        """Validate end time is after start time."""
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class UserIdentity(BaseModel):
    """Signed-in user, taken from the verified Firebase ID token."""

    uid: str
    email: EmailStr | None = None


class ClinicianIdentity(UserIdentity):
    """Signed-in clinician working the agenda."""
