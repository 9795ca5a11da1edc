"""Consultation schemas."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from medilink.schemas.appointments import reject_null, require_aware


class ConsultationNote(BaseModel):
    """Clinical note as entered when completing an appointment."""

    date: datetime | None = None
    observations: str = Field(default="", max_length=10000)
    exams: str = Field(default="", max_length=5000)
    medications: str = Field(default="", max_length=5000)

    @field_validator("date")
    @classmethod
    def validate_aware(cls, v: datetime | None) -> datetime | None:
        """Require a timezone-bearing visit date so histories sort by instant."""
        return require_aware(v)


class ConsultationCreate(ConsultationNote):
    """Schema for creating a consultation tied to an appointment."""

    appointment_id: str
    patient_id: str
    doctor_id: str
    date: datetime


class Consultation(ConsultationCreate):
    """Stored consultation."""

    id: str
    created_at: datetime

    @field_validator("date")
    @classmethod
    def validate_aware(cls, v: datetime) -> datetime:
        """Records saved without an offset are read as UTC."""
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class ConsultationUpdate(BaseModel):
    """Partial consultation update. Fields may be omitted but not nulled."""

    date: datetime | None = None
    observations: str | None = Field(None, max_length=10000)
    exams: str | None = Field(None, max_length=5000)
    medications: str | None = Field(None, max_length=5000)

    @field_validator("date", "observations", "exams", "medications", mode="before")
    @classmethod
    def validate_not_null(cls, v: Any) -> Any:
        return reject_null(v)

    @field_validator("date")
    @classmethod
    def validate_aware(cls, v: datetime | None) -> datetime | None:
        return require_aware(v)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
