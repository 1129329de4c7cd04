"""
Request and response models for the HealthMate API with validation.
"""

from pydantic import BaseModel, Field
from typing import Optional

from healthmate.advice import AdviceState
from healthmate.chat import ChatTurn
from healthmate.records import HealthRecord


# ══════════════════════════════════════════════
# REQUEST MODELS
# ══════════════════════════════════════════════

class ChatRequest(BaseModel):
    """Message endpoint request. Blank, null and oversize text are answered, not rejected."""
    message: Optional[str] = None

    model_config = {
        "json_schema_extra": {"example": {"message": "最近总是睡不好，怎么办？"}}
    }


class TodayUpdateRequest(BaseModel):
    """Edit today's record. Omitted, zero or blank fields keep their value."""
    steps: Optional[int] = Field(None, ge=0, le=200_000)
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    diet_note: Optional[str] = Field(None, max_length=500)

    model_config = {
        "json_schema_extra": {
            "example": {"steps": 10500, "sleep_hours": 7.5, "diet_note": "早餐：燕麦；午餐：沙拉"}
        }
    }


# ══════════════════════════════════════════════
# RESPONSE MODELS
# ══════════════════════════════════════════════

class ChatReply(BaseModel):
    """Message endpoint response. `reply` is always human-readable."""
    reply: str
    kind: str


class HealthRecordOut(BaseModel):
    day: str
    steps: int
    sleep_hours: float
    diet_note: str

    @classmethod
    def from_record(cls, record: HealthRecord) -> "HealthRecordOut":
        return cls(
            day=record.day,
            steps=record.steps,
            sleep_hours=record.sleep_hours,
            diet_note=record.diet_note,
        )


class RecordsResponse(BaseModel):
    records: list[HealthRecordOut]
    today_index: int


class AdviceResponse(BaseModel):
    text: str
    pending: bool
    kind: Optional[str] = None
    sequence: int

    @classmethod
    def from_state(cls, state: AdviceState) -> "AdviceResponse":
        return cls(
            text=state.text,
            pending=state.pending,
            kind=state.kind.value if state.kind else None,
            sequence=state.sequence,
        )


class ChatTurnOut(BaseModel):
    speaker: str
    text: str
    failure: Optional[str] = None

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> "ChatTurnOut":
        return cls(
            speaker=turn.speaker.value,
            text=turn.text,
            failure=turn.failure.value if turn.failure else None,
        )


class TranscriptResponse(BaseModel):
    turns: list[ChatTurnOut]
    sending: bool


class SendResponse(BaseModel):
    accepted: bool
    turns: list[ChatTurnOut]


class WeeklySummaryResponse(BaseModel):
    total_steps: int
    avg_steps: float
    avg_sleep: float
    most_active: str
    least_sleep: str
