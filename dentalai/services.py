from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import and_, select, text
from sqlalchemy.orm import Session, selectinload

from .ai_service import AIBackend, require_client
from .db import Base, db_session, engine
from .errors import NotFound, ValidationFailed
from .models import Appointment, AppointmentStatus, Note, Patient, Referral, utcnow

logger = structlog.get_logger(__name__)

SHORT_NOTE_MIN_LENGTH = 50
REFERRAL_TOKEN_MONTHS = 6
SLOT_TAKEN = "Appointment time slot is already booked."

# Editable columns and the value a full-replace PUT writes when a field is omitted
PATIENT_FIELDS: dict[str, Any] = {
    "first_name": "",
    "last_name": "",
    "date_of_birth": None,
    "email": "",
    "phone": "",
    "address": "",
    "city": "",
    "state": "",
    "zip_code": "",
    "chief_complaint": None,
    "symptoms": None,
    "tooth_notation": None,
}
REFERRAL_FIELDS: dict[str, Any] = {
    "referrer_name": "",
    "referrer_email": "",
    "referrer_phone": "",
    "referrer_practice_name": "",
    "reason": "",
}


# =========================
# Bootstrap DB
# =========================
def init_db() -> None:
    """Create the tables if they do not exist."""
    Base.metadata.create_all(bind=engine)


def database_ok() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database_unreachable")
        return False


# =========================
# Helpers / DTO
# =========================
def add_months(when: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    month_index = when.month - 1 + months
    year = when.year + month_index // 12
    month = month_index % 12 + 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


def as_utc_naive(when: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if when.tzinfo is not None:
        return when.astimezone(timezone.utc).replace(tzinfo=None)
    return when


def _apply_fields(obj: Any, fields: dict[str, Any], defaults: dict[str, Any]) -> None:
    for name, default in defaults.items():
        value = fields.get(name, default)
        setattr(obj, name, default if value is None and default is not None else value)


def _require_names(fields: dict[str, Any]) -> None:
    for name in ("first_name", "last_name"):
        if not (fields.get(name) or "").strip():
            raise ValidationFailed(f"{name.replace('_', ' ').capitalize()} is required.")


def _get_or_404(s: Session, model: type, obj_id: int, label: str) -> Any:
    obj = s.get(model, obj_id)
    if obj is None:
        raise NotFound(f"{label} {obj_id} not found.")
    return obj


@dataclass(frozen=True)
class ReferralPortal:
    """Read-only view behind a referral access token."""
    referral: Referral
    patient: Patient
    recent_notes: list[Note]


# =========================
# Patients
# =========================
def list_patients() -> list[Patient]:
    with db_session() as s:
        return list(s.scalars(select(Patient).order_by(Patient.last_name, Patient.first_name)))


def get_patient(patient_id: int) -> Patient:
    """Patient with its referrals, notes and appointments loaded."""
    with db_session() as s:
        q = (
            select(Patient)
            .where(Patient.id == patient_id)
            .options(
                selectinload(Patient.referrals),
                selectinload(Patient.notes),
                selectinload(Patient.appointments),
            )
        )
        patient = s.scalars(q).first()
        if patient is None:
            raise NotFound(f"Patient {patient_id} not found.")
        return patient


def create_patient(fields: dict[str, Any]) -> Patient:
    _require_names(fields)
    with db_session() as s:
        now = utcnow()
        p = Patient(created_at=now, updated_at=now)
        _apply_fields(p, fields, PATIENT_FIELDS)
        p.first_name = p.first_name.strip()
        p.last_name = p.last_name.strip()
        s.add(p)
        s.flush()
        return p


def update_patient(patient_id: int, fields: dict[str, Any]) -> None:
    """Full replace of the editable fields."""
    _require_names(fields)
    with db_session() as s:
        p = _get_or_404(s, Patient, patient_id, "Patient")
        _apply_fields(p, fields, PATIENT_FIELDS)
        p.first_name = p.first_name.strip()
        p.last_name = p.last_name.strip()
        p.updated_at = utcnow()


def delete_patient(patient_id: int) -> None:
    """Deletes the patient together with its referrals, notes and appointments."""
    with db_session() as s:
        p = _get_or_404(s, Patient, patient_id, "Patient")
        s.delete(p)
    logger.info("patient_deleted", patient_id=patient_id)


# =========================
# Referrals
# =========================
def list_referrals(patient_id: int) -> list[Referral]:
    with db_session() as s:
        q = select(Referral).where(Referral.patient_id == patient_id).order_by(Referral.referred_date.desc())
        return list(s.scalars(q))


def create_referral(patient_id: int, fields: dict[str, Any]) -> Referral:
    """
    Issues a referral:
    - referred date is now
    - opaque access token for the read-only portal
    - token expires 6 calendar months later
    """
    with db_session() as s:
        _get_or_404(s, Patient, patient_id, "Patient")

        now = utcnow()
        r = Referral(
            patient_id=patient_id,
            referred_date=now,
            created_at=now,
            access_token=str(uuid.uuid4()),
            access_token_expiry=add_months(now, REFERRAL_TOKEN_MONTHS),
        )
        _apply_fields(r, fields, REFERRAL_FIELDS)
        s.add(r)
        s.flush()
        logger.info("referral_issued", patient_id=patient_id, referral_id=r.id, expires=r.access_token_expiry.isoformat())
        return r


def get_referral_by_token(token: str, now: datetime | None = None) -> ReferralPortal:
    """
    Token lookup for the portal: valid only while now < expiry.
    Unknown and expired tokens are indistinguishable to the caller.
    """
    now = now or utcnow()
    with db_session() as s:
        r = s.scalars(
            select(Referral).where(
                and_(
                    Referral.access_token == token,
                    Referral.access_token_expiry.is_not(None),
                    Referral.access_token_expiry > now,
                )
            )
        ).first()
        if r is None:
            raise NotFound("Referral not found or link expired.")

        patient = s.get(Patient, r.patient_id)
        notes = list(
            s.scalars(
                select(Note)
                .where(Note.patient_id == r.patient_id)
                .order_by(Note.created_at.desc(), Note.id.desc())
                .limit(5)
            )
        )
        return ReferralPortal(referral=r, patient=patient, recent_notes=notes)


# =========================
# Appointments
# =========================
def _slot_taken(s: Session, when: datetime, exclude_id: int | None = None) -> bool:
    """
    Exact-time rule, practice-wide: any non-cancelled appointment at the very
    same datetime blocks the slot. Read-then-write, no lock.
    """
    q = select(Appointment.id).where(
        and_(
            Appointment.appointment_date_time == when,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
    )
    if exclude_id is not None:
        q = q.where(Appointment.id != exclude_id)
    return s.execute(q.limit(1)).first() is not None


def list_patient_appointments(patient_id: int) -> list[Appointment]:
    with db_session() as s:
        q = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date_time.asc())
        )
        return list(s.scalars(q))


def list_appointments(start: datetime | None = None, end: datetime | None = None) -> list[Appointment]:
    """All appointments, optionally within [start, end]."""
    with db_session() as s:
        q = select(Appointment)
        if start is not None:
            q = q.where(Appointment.appointment_date_time >= as_utc_naive(start))
        if end is not None:
            q = q.where(Appointment.appointment_date_time <= as_utc_naive(end))
        return list(s.scalars(q.order_by(Appointment.appointment_date_time.asc())))


def schedule_appointment(
    patient_id: int,
    appointment_date_time: datetime,
    type: str = "",
    notes: str | None = None,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
) -> Appointment:
    when = as_utc_naive(appointment_date_time)
    with db_session() as s:
        _get_or_404(s, Patient, patient_id, "Patient")

        if _slot_taken(s, when):
            raise ValidationFailed(SLOT_TAKEN)

        now = utcnow()
        app = Appointment(
            patient_id=patient_id,
            appointment_date_time=when,
            type=type or "",
            notes=notes,
            status=status,
            created_at=now,
            updated_at=now,
        )
        s.add(app)
        s.flush()
        return app


def update_appointment(
    appointment_id: int,
    appointment_date_time: datetime,
    type: str = "",
    notes: str | None = None,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
) -> None:
    """Full replace; the slot is re-checked only when the time moves."""
    when = as_utc_naive(appointment_date_time)
    with db_session() as s:
        app = _get_or_404(s, Appointment, appointment_id, "Appointment")

        if app.appointment_date_time != when and _slot_taken(s, when, exclude_id=appointment_id):
            raise ValidationFailed(SLOT_TAKEN)

        app.appointment_date_time = when
        app.type = type or ""
        app.notes = notes
        app.status = status
        app.updated_at = utcnow()


def cancel_appointment(appointment_id: int) -> None:
    with db_session() as s:
        app = _get_or_404(s, Appointment, appointment_id, "Appointment")
        app.status = AppointmentStatus.CANCELLED
        app.updated_at = utcnow()


def delete_appointment(appointment_id: int) -> None:
    with db_session() as s:
        s.delete(_get_or_404(s, Appointment, appointment_id, "Appointment"))


# =========================
# Notes
# =========================
def list_notes(patient_id: int) -> list[Note]:
    with db_session() as s:
        q = select(Note).where(Note.patient_id == patient_id).order_by(Note.created_at.desc(), Note.id.desc())
        return list(s.scalars(q))


def get_note(note_id: int) -> Note:
    with db_session() as s:
        return _get_or_404(s, Note, note_id, "Note")


def create_note(patient_id: int, content: str, summary: str | None = None, letter: str | None = None) -> Note:
    with db_session() as s:
        _get_or_404(s, Patient, patient_id, "Patient")
        now = utcnow()
        n = Note(patient_id=patient_id, content=content, summary=summary, letter=letter, created_at=now, updated_at=now)
        s.add(n)
        s.flush()
        return n


def update_note(note_id: int, content: str, summary: str | None = None, letter: str | None = None) -> None:
    with db_session() as s:
        n = _get_or_404(s, Note, note_id, "Note")
        n.content = content
        n.summary = summary
        n.letter = letter
        n.updated_at = utcnow()


def delete_note(note_id: int) -> None:
    with db_session() as s:
        s.delete(_get_or_404(s, Note, note_id, "Note"))


def _store_on_note(note_id: int | None, field: str, value: str) -> bool:
    """Best effort: a note that no longer exists is skipped, not an error."""
    if note_id is None:
        return False
    with db_session() as s:
        n = s.get(Note, note_id)
        if n is None:
            logger.info("note_missing_result_not_saved", note_id=note_id, field=field)
            return False
        setattr(n, field, value)
        n.updated_at = utcnow()
        return True


# =========================
# AI-assisted text (use cases)
# =========================
def short_note_message(trimmed: str) -> str:
    return f"Insufficient detail to produce a SOAP summary. Original note: '{trimmed}'"


def summarize_note(content: str | None, note_id: int | None, backend: AIBackend) -> str:
    """
    Use case: SOAP summary of a clinical note.
    - notes under 50 characters never reach the model
    - the result is written onto the note when note_id is given
    """
    if not content or not content.strip():
        raise ValidationFailed("Note content is required.")

    trimmed = content.strip()
    if len(trimmed) < SHORT_NOTE_MIN_LENGTH:
        message = short_note_message(trimmed)
        _store_on_note(note_id, "summary", message)
        return message

    summary = require_client(backend).summarize(content)
    _store_on_note(note_id, "summary", summary)
    return summary


def _patient_name_for_note(note_id: int) -> str | None:
    with db_session() as s:
        row = s.execute(
            select(Patient.first_name, Patient.last_name)
            .join(Note, Note.patient_id == Patient.id)
            .where(Note.id == note_id)
        ).first()
        if row is None:
            return None
        return f"{row.first_name} {row.last_name}".strip() or None


def draft_referral_letter(
    soap_summary: str | None,
    referrer_name: str | None,
    backend: AIBackend,
    referrer_address: str | None = None,
    note_id: int | None = None,
    patient_name: str | None = None,
) -> str:
    """
    Use case: referrer letter from a SOAP summary.
    The patient name falls back to the note's patient when not supplied.
    """
    if not soap_summary or not soap_summary.strip():
        raise ValidationFailed("SOAP summary is required.")
    if not referrer_name or not referrer_name.strip():
        raise ValidationFailed("Referrer name is required.")

    if (not patient_name or not patient_name.strip()) and note_id is not None:
        patient_name = _patient_name_for_note(note_id)

    letter = require_client(backend).draft_letter(soap_summary, referrer_name, referrer_address, patient_name)
    _store_on_note(note_id, "letter", letter)
    return letter
