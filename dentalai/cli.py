from __future__ import annotations

import argparse
import sys
from datetime import datetime

from . import config
from .ai_service import build_ai_backend
from .errors import DentalAIError
from .logging_config import configure_logging
from .services import (
    cancel_appointment,
    create_patient,
    create_referral,
    get_note,
    init_db,
    list_appointments,
    list_patient_appointments,
    list_patients,
    list_referrals,
    schedule_appointment,
    summarize_note,
)


def cmd_init(args: argparse.Namespace) -> None:
    init_db()
    print("Database initialised.")


def cmd_list(args: argparse.Namespace) -> None:
    if args.entity == "patients":
        for p in list_patients():
            print(f"{p.id} | {p.last_name} {p.first_name} | {p.email or '-'}")
    elif args.entity == "appointments":
        rows = list_patient_appointments(args.patient_id) if args.patient_id else list_appointments()
        for a in rows:
            print(f"{a.id} | patient {a.patient_id} | {a.appointment_date_time.isoformat()} | {a.type or '-'} | {a.status.value}")
    elif args.entity == "referrals":
        if not args.patient_id:
            raise SystemExit("--patient-id is required to list referrals")
        for r in list_referrals(args.patient_id):
            print(f"{r.id} | {r.referrer_name} | {r.referred_date:%Y-%m-%d} | token {r.access_token}")


def cmd_add_patient(args: argparse.Namespace) -> None:
    p = create_patient(
        {"first_name": args.first_name, "last_name": args.last_name, "email": args.email, "phone": args.phone}
    )
    print(f"Patient created: {p.id}")


def cmd_book(args: argparse.Namespace) -> None:
    when = datetime.fromisoformat(args.at)  # e.g. 2026-01-14T10:30
    a = schedule_appointment(args.patient_id, when, type=args.type, notes=args.notes)
    print(f"Appointment booked: {a.id} at {a.appointment_date_time.isoformat()}")


def cmd_cancel(args: argparse.Namespace) -> None:
    cancel_appointment(args.appointment_id)
    print("Cancelled.")


def cmd_refer(args: argparse.Namespace) -> None:
    r = create_referral(
        args.patient_id,
        {"referrer_name": args.referrer_name, "referrer_email": args.referrer_email, "reason": args.reason},
    )
    print(f"Referral {r.id} issued. Token: {r.access_token} (valid until {r.access_token_expiry:%Y-%m-%d})")


def cmd_summarize(args: argparse.Namespace) -> None:
    """Same flow as POST /api/ai/summarize: short-note guard, then the model."""
    content = args.text if args.text is not None else get_note(args.note_id).content
    print(summarize_note(content, args.note_id, build_ai_backend()))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dentalai", description="DentalAI command line")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Create the database tables")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="List entities")
    p_list.add_argument("entity", choices=["patients", "appointments", "referrals"])
    p_list.add_argument("--patient-id", type=int, default=None)
    p_list.set_defaults(func=cmd_list)

    p_addp = sub.add_parser("add-patient", help="Create a patient")
    p_addp.add_argument("--first-name", required=True)
    p_addp.add_argument("--last-name", required=True)
    p_addp.add_argument("--email", default="")
    p_addp.add_argument("--phone", default="")
    p_addp.set_defaults(func=cmd_add_patient)

    p_book = sub.add_parser("book", help="Schedule an appointment")
    p_book.add_argument("--patient-id", type=int, required=True)
    p_book.add_argument("--at", required=True, help="ISO datetime, e.g. 2026-01-14T10:30")
    p_book.add_argument("--type", default="Consult")
    p_book.add_argument("--notes", default=None)
    p_book.set_defaults(func=cmd_book)

    p_cancel = sub.add_parser("cancel", help="Cancel an appointment")
    p_cancel.add_argument("--appointment-id", type=int, required=True)
    p_cancel.set_defaults(func=cmd_cancel)

    p_refer = sub.add_parser("refer", help="Issue a referral with a portal token")
    p_refer.add_argument("--patient-id", type=int, required=True)
    p_refer.add_argument("--referrer-name", required=True)
    p_refer.add_argument("--referrer-email", default="")
    p_refer.add_argument("--reason", default="")
    p_refer.set_defaults(func=cmd_refer)

    p_sum = sub.add_parser("summarize", help="SOAP summary of a note or of free text")
    src = p_sum.add_mutually_exclusive_group(required=True)
    src.add_argument("--note-id", type=int)
    src.add_argument("--text")
    p_sum.set_defaults(func=cmd_summarize)

    return p


def main(argv: list[str] | None = None) -> int:
    configure_logging(config.LOG_LEVEL, json_logs=config.LOG_JSON)
    parser = build_parser()
    args = parser.parse_args(argv)
    init_db()  # tables always present
    try:
        args.func(args)
    except DentalAIError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
