from __future__ import annotations

import enum
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AppointmentStatus(enum.Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    email: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(80), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(80), nullable=False, default="")
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False, default="")

    # dental-specific free text
    chief_complaint: Mapped[str | None] = mapped_column(Text, nullable=True)
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)
    tooth_notation: Mapped[str | None] = mapped_column(String(120), nullable=True)  # FDI, not parsed

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # one-way ownership: children only keep patient_id
    referrals: Mapped[list["Referral"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)
    notes: Mapped[list["Note"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)
    appointments: Mapped[list["Appointment"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self) -> str:
        return f"Patient({self.first_name} {self.last_name})"


class Referral(Base):
    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)

    referrer_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    referrer_email: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    referrer_phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    referrer_practice_name: Mapped[str] = mapped_column(String(160), nullable=False, default="")

    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    referred_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # read-only portal access
    access_token: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    access_token_expiry: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)  # SOAP summary
    letter: Mapped[str | None] = mapped_column(Text, nullable=True)  # referrer letter

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)

    appointment_date_time: Mapped[datetime] = mapped_column("appointment_datetime", DateTime, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(60), nullable=False, default="")  # Consult, Treatment, Follow-up
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus), default=AppointmentStatus.SCHEDULED, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
