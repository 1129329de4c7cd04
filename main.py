"""
HealthMate — FastAPI Backend
All advice and chat logic lives in healthmate/. This module is the HTTP surface.
"""

import time
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

load_dotenv()

from healthmate import secrets_manager
from healthmate.advice import AdviceState
from healthmate.api_exceptions import (
    HealthMateAPIError, healthmate_error_handler, chat_validation_handler,
)
from healthmate.api_models import (
    ChatRequest, ChatReply, TodayUpdateRequest,
    HealthRecordOut, RecordsResponse, AdviceResponse,
    ChatTurnOut, TranscriptResponse, SendResponse, WeeklySummaryResponse,
)
from healthmate.completion import CompletionClient
from healthmate.messages import render_reply
from healthmate.monitoring import health_check
from healthmate.records import HealthRecordStore, today_index
from healthmate.session import DashboardSession, SessionRegistry
from healthmate.structured_logging import logger, setup_json_logging

completion_client = CompletionClient()
sessions = SessionRegistry(completion_client)

app = FastAPI(title="HealthMate")
app.add_middleware(SessionMiddleware, secret_key=secrets_manager.get_secret_key())
app.add_exception_handler(HealthMateAPIError, healthmate_error_handler)
app.add_exception_handler(RequestValidationError, chat_validation_handler)


@app.on_event("startup")
async def startup():
    setup_json_logging(secrets_manager.get_log_file())
    secrets_manager.validate_secrets()


@app.on_event("shutdown")
async def shutdown():
    await sessions.end_all()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    token = logger.log_request(request.method, request.url.path)
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.log_response(500, (time.perf_counter() - start) * 1000, error=repr(e))
        raise
    finally:
        logger.clear_context(token)
    logger.log_response(response.status_code, (time.perf_counter() - start) * 1000)
    return response


async def current_session(request: Request) -> DashboardSession:
    """Session for write routes; created on first use."""
    await sessions.expire_idle()
    session = sessions.get_or_create(request.session.get("session_id"))
    request.session["session_id"] = session.session_id
    return session


async def existing_session(request: Request) -> Optional[DashboardSession]:
    """Session for read routes; never created here, so reads cost no completion call."""
    await sessions.expire_idle()
    return sessions.find(request.session.get("session_id"))


def _store(session: Optional[DashboardSession]) -> HealthRecordStore:
    return session.store if session else HealthRecordStore()


def _turns(session: Optional[DashboardSession]) -> list[ChatTurnOut]:
    if session is None:
        return []
    return [ChatTurnOut.from_turn(t) for t in session.chat.transcript]


# ══════════════════════════════════════════════
# MESSAGE → REPLY  (stateless transport)
# ══════════════════════════════════════════════

@app.post("/api/chat", response_model=ChatReply)
async def chat_ep(body: ChatRequest):
    result = await completion_client.reply(body.message)
    return ChatReply(reply=render_reply(result), kind=result.kind.value)


# ══════════════════════════════════════════════
# HEALTH RECORDS
# ══════════════════════════════════════════════

@app.get("/api/records", response_model=RecordsResponse)
async def get_records(session: Optional[DashboardSession] = Depends(existing_session)):
    return RecordsResponse(
        records=[HealthRecordOut.from_record(r) for r in _store(session).snapshot()],
        today_index=today_index(),
    )


@app.put("/api/records/today", response_model=RecordsResponse)
async def update_today(body: TodayUpdateRequest,
                       session: DashboardSession = Depends(current_session)):
    session.store.update_today(
        steps=body.steps,
        sleep_hours=body.sleep_hours,
        diet_note=body.diet_note,
    )
    return RecordsResponse(
        records=[HealthRecordOut.from_record(r) for r in session.store.snapshot()],
        today_index=today_index(),
    )


@app.get("/api/summary", response_model=WeeklySummaryResponse)
async def weekly_summary(session: Optional[DashboardSession] = Depends(existing_session)):
    return WeeklySummaryResponse(**_store(session).weekly_summary())


# ══════════════════════════════════════════════
# ADVICE
# ══════════════════════════════════════════════

@app.get("/api/advice", response_model=AdviceResponse)
async def get_advice(session: Optional[DashboardSession] = Depends(existing_session)):
    return AdviceResponse.from_state(session.advice_state if session else AdviceState())


@app.post("/api/advice/refresh", response_model=AdviceResponse)
async def refresh_advice(session: DashboardSession = Depends(current_session)):
    return AdviceResponse.from_state(await session.refresh_advice())


# ══════════════════════════════════════════════
# CHAT SESSION
# ══════════════════════════════════════════════

@app.get("/api/chat/transcript", response_model=TranscriptResponse)
async def get_transcript(session: Optional[DashboardSession] = Depends(existing_session)):
    return TranscriptResponse(turns=_turns(session), sending=bool(session and session.chat.sending))


@app.post("/api/chat/send", response_model=SendResponse)
async def chat_send(body: ChatRequest, session: DashboardSession = Depends(current_session)):
    accepted = await session.chat.send(body.message)
    return SendResponse(accepted=accepted, turns=_turns(session))


@app.delete("/api/session")
async def end_session(request: Request):
    session_id = request.session.pop("session_id", None)
    await sessions.end(session_id or "")
    return JSONResponse({"success": True})


# ══════════════════════════════════════════════
# HEALTH
# ══════════════════════════════════════════════

@app.get("/health")
async def health():
    return JSONResponse(await health_check.run_all())
