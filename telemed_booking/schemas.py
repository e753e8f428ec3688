"""Request models for the HTTP layer, validated with Pydantic."""

import re
from datetime import date as calendar_date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from telemed_booking.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


def _check_email(v):
    if v is None:
        return v
    if not EMAIL_PATTERN.match(v):
        raise ValueError("invalid email address")
    return v.lower()


def _normalize_gender(v):
    if isinstance(v, str):
        v = v.strip().lower()
        return v or None
    return v


class DoctorRegistration(RequestModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=1)
    specialty: str = Field(min_length=1)
    experience: int = Field(ge=0, description="Years of practice")
    price: float = Field(ge=0, description="Consultation price")
    languages: list[str] = Field(default_factory=list)
    rating: float = Field(4.5, ge=0, le=5)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)


class PatientRegistration(RequestModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=1)
    age: int | None = Field(None, ge=0, le=150)
    gender: Literal["male", "female", "other"] | None = None
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v):
        return _normalize_gender(v)


class PatientUpdate(RequestModel):
    name: str | None = Field(None, min_length=1)
    email: str | None = None
    age: int | None = Field(None, ge=0, le=150)
    gender: Literal["male", "female", "other"] | None = None
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v):
        return _normalize_gender(v)


class LoginRequest(RequestModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: Literal["doctor", "patient"]


class SlotCreate(RequestModel):
    date: str = Field(description="YYYY-MM-DD")
    time: str = Field(description="HH:MM, 24h")

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        try:
            calendar_date.fromisoformat(v)
        except ValueError:
            raise ValueError("date must be YYYY-MM-DD")
        return v

    @field_validator("time")
    @classmethod
    def check_time(cls, v):
        if not TIME_PATTERN.match(v):
            raise ValueError("time must be HH:MM")
        return v


class BookingRequest(RequestModel):
    patient_id: str = Field(min_length=1)
    doctor_id: str = Field(min_length=1)
    slot_id: str = Field(min_length=1)
    is_critical: bool = False


class MedicineIn(RequestModel):
    name: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    frequency: str = Field(min_length=1)
    duration: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class PrescriptionRequest(RequestModel):
    doctor_id: str = Field(min_length=1)
    patient_id: str = Field(min_length=1)
    medicines: list[MedicineIn] = Field(min_length=1)
    instructions: str = ""


class OrderRequest(RequestModel):
    prescription_id: str = Field(min_length=1)


class PaymentSettlement(RequestModel):
    paid: bool


def parse_model(model: type[BaseModel], data) -> BaseModel:
    """Validate a request body, converting Pydantic errors to ValidationError."""
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "body"
            problems.append(f"{location}: {error['msg']}")
        raise ValidationError("; ".join(problems)) from e
