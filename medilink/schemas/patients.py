"""Patient directory schemas."""

from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

PATIENT_ROLE = "PATIENT"


class PatientBase(BaseModel):
    """Base patient schema with common fields."""

    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(default="", max_length=20)
    address: str = Field(default="", max_length=300)
    birth_date: date | None = None
    document_number: str = Field(default="", max_length=30)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate phone number format when one is given."""
        if not v:
            return v
        cleaned = (
            v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
        )
        if not cleaned.isdigit():
            raise ValueError("Phone number must contain only digits and separators")
        if len(cleaned) < 7:
            raise ValueError("Phone number must have at least 7 digits")
        return v


class PatientCreate(PatientBase):
    """Schema for registering a patient with a sign-in account."""

    password: str = Field(..., min_length=6, max_length=128)


class Patient(PatientBase):
    """Patient directory entry. ``id`` is the patient's Firebase Auth uid."""

    id: str
    role: str = PATIENT_ROLE
    created_at: datetime | None = None
