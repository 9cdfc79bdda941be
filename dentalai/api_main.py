from __future__ import annotations

import time
from datetime import datetime

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from . import config
from .ai_service import AIBackend, build_ai_backend
from .errors import GenerationFailed, NotConfigured, NotFound, ValidationFailed
from .logging_config import configure_logging
from .schemas import (
    AppointmentIn,
    AppointmentOut,
    LetterIn,
    LetterOut,
    NoteIn,
    NoteOut,
    PatientDetailOut,
    PatientIn,
    PatientOut,
    ReferralIn,
    ReferralOut,
    ReferralPortalOut,
    SummarizeIn,
    SummarizeOut,
)
from .services import (
    create_note,
    create_patient,
    create_referral,
    database_ok,
    delete_appointment,
    delete_note,
    delete_patient,
    draft_referral_letter,
    get_note,
    get_patient,
    get_referral_by_token,
    init_db,
    list_appointments,
    list_notes,
    list_patient_appointments,
    list_patients,
    list_referrals,
    schedule_appointment,
    summarize_note,
    update_appointment,
    update_note,
    update_patient,
)

configure_logging(config.LOG_LEVEL, json_logs=config.LOG_JSON)
logger = structlog.get_logger(__name__)

app = FastAPI(title="DentalAI API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)



# Startup

@app.on_event("startup")
def startup() -> None:
    # Tables + AI provider, both resolved once
    init_db()
    app.state.ai_backend = build_ai_backend()
    logger.info("startup_complete", database=config.DATABASE_URL.split("://", 1)[0])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return response



# Error mapping

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})



# Dependencies

def get_ai_backend(request: Request) -> AIBackend:
    return request.app.state.ai_backend


def _no_content() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)



# Misc endpoints

@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(url="/docs")


@app.get("/api/health")
def health() -> JSONResponse:
    if database_ok():
        return JSONResponse({"status": "healthy", "database": "connected"})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "unhealthy", "database": "disconnected"},
    )



# Patients

@app.get("/api/patients", response_model=list[PatientOut])
def api_patients() -> list[PatientOut]:
    return [PatientOut.model_validate(p) for p in list_patients()]


@app.get("/api/patients/{patient_id}", response_model=PatientDetailOut)
def api_patient(patient_id: int) -> PatientDetailOut:
    return PatientDetailOut.model_validate(get_patient(patient_id))


@app.post("/api/patients", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def api_create_patient(payload: PatientIn, response: Response) -> PatientOut:
    p = create_patient(payload.model_dump())
    response.headers["Location"] = f"/api/patients/{p.id}"
    return PatientOut.model_validate(p)


@app.put("/api/patients/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_update_patient(patient_id: int, payload: PatientIn) -> Response:
    update_patient(patient_id, payload.model_dump())
    return _no_content()


@app.delete("/api/patients/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_patient(patient_id: int) -> Response:
    delete_patient(patient_id)
    return _no_content()



# Referrals

@app.get("/api/patients/{patient_id}/referrals", response_model=list[ReferralOut])
def api_referrals(patient_id: int) -> list[ReferralOut]:
    return [ReferralOut.model_validate(r) for r in list_referrals(patient_id)]


@app.post("/api/patients/{patient_id}/referrals", response_model=ReferralOut, status_code=status.HTTP_201_CREATED)
def api_create_referral(patient_id: int, payload: ReferralIn, response: Response) -> ReferralOut:
    r = create_referral(patient_id, payload.model_dump())
    response.headers["Location"] = f"/api/patients/{patient_id}/referrals/{r.id}"
    return ReferralOut.model_validate(r)


@app.get("/api/referrals/{token}", response_model=ReferralPortalOut)
def api_referral_portal(token: str) -> ReferralPortalOut:
    """Read-only referral view for the referrer, no login: the token is the credential."""
    return ReferralPortalOut.model_validate(get_referral_by_token(token))



# Appointments

@app.get("/api/patients/{patient_id}/appointments", response_model=list[AppointmentOut])
def api_patient_appointments(patient_id: int) -> list[AppointmentOut]:
    return [AppointmentOut.model_validate(a) for a in list_patient_appointments(patient_id)]


@app.get("/api/appointments", response_model=list[AppointmentOut])
def api_appointments(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
) -> list[AppointmentOut]:
    return [AppointmentOut.model_validate(a) for a in list_appointments(start, end)]


@app.post("/api/patients/{patient_id}/appointments", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
def api_create_appointment(patient_id: int, payload: AppointmentIn, response: Response) -> AppointmentOut:
    a = schedule_appointment(
        patient_id=patient_id,
        appointment_date_time=payload.appointment_date_time,
        type=payload.type,
        notes=payload.notes,
        status=payload.status,
    )
    response.headers["Location"] = f"/api/patients/{patient_id}/appointments/{a.id}"
    return AppointmentOut.model_validate(a)


@app.put("/api/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_update_appointment(appointment_id: int, payload: AppointmentIn) -> Response:
    update_appointment(
        appointment_id,
        appointment_date_time=payload.appointment_date_time,
        type=payload.type,
        notes=payload.notes,
        status=payload.status,
    )
    return _no_content()


@app.delete("/api/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_appointment(appointment_id: int) -> Response:
    delete_appointment(appointment_id)
    return _no_content()



# Notes

@app.get("/api/patients/{patient_id}/notes", response_model=list[NoteOut])
def api_notes(patient_id: int) -> list[NoteOut]:
    return [NoteOut.model_validate(n) for n in list_notes(patient_id)]


@app.post("/api/patients/{patient_id}/notes", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def api_create_note(patient_id: int, payload: NoteIn, response: Response) -> NoteOut:
    n = create_note(patient_id, payload.content, payload.summary, payload.letter)
    response.headers["Location"] = f"/api/patients/{patient_id}/notes/{n.id}"
    return NoteOut.model_validate(n)


@app.get("/api/notes/{note_id}", response_model=NoteOut)
def api_note(note_id: int) -> NoteOut:
    return NoteOut.model_validate(get_note(note_id))


@app.put("/api/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_update_note(note_id: int, payload: NoteIn) -> Response:
    update_note(note_id, payload.content, payload.summary, payload.letter)
    return _no_content()


@app.delete("/api/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_note(note_id: int) -> Response:
    delete_note(note_id)
    return _no_content()



# AI endpoints

@app.post("/api/ai/summarize", response_model=SummarizeOut)
def api_summarize(payload: SummarizeIn, backend: AIBackend = Depends(get_ai_backend)):
    try:
        summary = summarize_note(payload.note_content, payload.note_id, backend)
    except ValidationFailed:
        raise
    except (NotConfigured, GenerationFailed) as e:
        logger.warning("ai_summarize_failed", error=e.message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
    except Exception:
        logger.exception("ai_summarize_error")
        raise HTTPException(status_code=500, detail="An error occurred while summarizing the notes.")

    return SummarizeOut(summary=summary)


@app.post("/api/ai/letter", response_model=LetterOut)
def api_letter(payload: LetterIn, backend: AIBackend = Depends(get_ai_backend)):
    try:
        letter = draft_referral_letter(
            payload.soap_summary,
            payload.referrer_name,
            backend,
            referrer_address=payload.referrer_address,
            note_id=payload.note_id,
            patient_name=payload.patient_name,
        )
    except ValidationFailed:
        raise
    except (NotConfigured, GenerationFailed) as e:
        logger.warning("ai_letter_failed", error=e.message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
    except Exception:
        logger.exception("ai_letter_error")
        raise HTTPException(status_code=500, detail="An error occurred while generating the letter.")

    return LetterOut(letter=letter)
