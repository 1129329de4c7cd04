"""
HealthMate — Chat Session

An append-only transcript of user / assistant turns. Sends are serialized:
while one is waiting on the completion service, further sends are ignored.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from healthmate.completion import ADVISOR_PERSONA, CompletionClient, CompletionKind
from healthmate.messages import render_chat
from healthmate.structured_logging import logger


class Speaker(str, Enum):
    USER      = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatTurn:
    speaker: Speaker
    text:    str
    # set on assistant placeholders written for a failed completion
    failure: Optional[CompletionKind] = None


class ChatSession:
    def __init__(self, client: CompletionClient, session_id: Optional[str] = None):
        self.client = client
        self.session_id = session_id or uuid.uuid4().hex
        self._turns: list[ChatTurn] = []
        self._sending = False

    @property
    def transcript(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    @property
    def sending(self) -> bool:
        return self._sending

    def __len__(self) -> int:
        return len(self._turns)

    def _append(self, turn: ChatTurn) -> None:
        self._turns.append(turn)
        logger.log_chat_turn(self.session_id, turn.speaker.value, len(self._turns))

    async def send(self, text: str) -> bool:
        """Submit one user message.

        Returns False without touching the transcript when `text` is blank
        or another send is still in flight. Otherwise the user turn is
        appended before the service is called and exactly one assistant
        turn follows it.
        """
        if not (text or "").strip() or self._sending:
            return False

        self._sending = True
        self._append(ChatTurn(Speaker.USER, text))
        try:
            result = await self.client.complete(ADVISOR_PERSONA, text.strip())
            self._append(ChatTurn(
                Speaker.ASSISTANT,
                render_chat(result),
                failure=None if result.ok else result.kind,
            ))
        finally:
            self._sending = False
        return True


async def send(session: ChatSession, text: str) -> ChatSession:
    """Functional form: send on `session` and hand it back."""
    await session.send(text)
    return session
