from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import AppointmentStatus


class CamelModel(BaseModel):
    """JSON in camelCase (what the Angular client sends and reads)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# =========================
# Patients
# =========================
class PatientIn(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    date_of_birth: date | None = None
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    chief_complaint: str | None = None
    symptoms: str | None = None
    tooth_notation: str | None = None


class PatientOut(PatientIn):
    id: int
    created_at: datetime
    updated_at: datetime


# =========================
# Referrals
# =========================
class ReferralIn(CamelModel):
    referrer_name: str = ""
    referrer_email: str = ""
    referrer_phone: str = ""
    referrer_practice_name: str = ""
    reason: str = ""


class ReferralOut(ReferralIn):
    id: int
    patient_id: int
    referred_date: datetime
    access_token: str | None = None
    access_token_expiry: datetime | None = None
    created_at: datetime


# =========================
# Notes
# =========================
class NoteIn(CamelModel):
    content: str = Field(..., min_length=1)
    summary: str | None = None
    letter: str | None = None


class NoteOut(NoteIn):
    id: int
    patient_id: int
    created_at: datetime
    updated_at: datetime


# =========================
# Appointments
# =========================
class AppointmentIn(CamelModel):
    appointment_date_time: datetime
    type: str = ""
    notes: str | None = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED


class AppointmentOut(AppointmentIn):
    id: int
    patient_id: int
    created_at: datetime
    updated_at: datetime


class PatientDetailOut(PatientOut):
    referrals: list[ReferralOut] = []
    notes: list[NoteOut] = []
    appointments: list[AppointmentOut] = []


class ReferralPortalOut(CamelModel):
    referral: ReferralOut
    patient: PatientOut
    recent_notes: list[NoteOut]


# =========================
# AI
# =========================
class SummarizeIn(CamelModel):
    note_content: str | None = None
    note_id: int | None = None


class SummarizeOut(CamelModel):
    summary: str


class LetterIn(CamelModel):
    soap_summary: str | None = None
    referrer_name: str | None = None
    referrer_address: str | None = None
    note_id: int | None = None
    patient_name: str | None = None


class LetterOut(CamelModel):
    letter: str
