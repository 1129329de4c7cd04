"""
HealthMate — Advice Generator

Summarizes the most recent days of the week into a single prompt and asks
the completion service for exercise / diet / rest advice.

Regenerations are not serialized. Each call takes a sequence number; the
call that resolves last writes the state, and the state remembers which
sequence produced it so a stale commit is visible as
`state.sequence < generator.issued`.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from healthmate.completion import ADVISOR_PERSONA, CompletionClient, CompletionKind
from healthmate.messages import render_advice
from healthmate.records import HealthRecord
from healthmate.structured_logging import logger

# Fixed regardless of how many records are supplied.
ADVICE_WINDOW = 3
SUMMARY_SEPARATOR = "； "

ADVICE_TEMPLATE = (
    "基于最近三天的健康数据（{summary}），"
    "请给出运动、饮食和作息的健康建议，语气温和友善。"
)


@dataclass(frozen=True)
class AdviceState:
    text:     str = ""
    pending:  bool = False
    kind:     Optional[CompletionKind] = None
    sequence: int = 0


def advice_window(records: Sequence[HealthRecord]) -> list[HealthRecord]:
    """The last ADVICE_WINDOW records, kept in day order."""
    return list(records)[-ADVICE_WINDOW:]


def build_advice_prompt(records: Sequence[HealthRecord]) -> str:
    summary = SUMMARY_SEPARATOR.join(r.summary_line() for r in advice_window(records))
    return ADVICE_TEMPLATE.format(summary=summary)


class AdviceGenerator:
    """Owns the single AdviceState of one dashboard session."""

    def __init__(self, client: CompletionClient):
        self.client = client
        self.state = AdviceState()
        self.issued = 0
        self._in_flight = 0

    @property
    def is_stale(self) -> bool:
        """True when the committed text came from an older request than the newest issued."""
        return self.state.sequence < self.issued

    async def generate(self, records: Sequence[HealthRecord]) -> AdviceState:
        self.issued += 1
        sequence = self.issued
        self._in_flight += 1
        self.state = replace(self.state, pending=True)

        prompt = build_advice_prompt(records)
        result = None
        try:
            result = await self.client.complete(ADVISOR_PERSONA, prompt)
        finally:
            self._in_flight -= 1
            if result is None:
                # aborted (e.g. cancelled): keep the text, settle the flag
                self.state = replace(self.state, pending=self._in_flight > 0)

        self.state = AdviceState(
            text=render_advice(result),
            pending=self._in_flight > 0,
            kind=result.kind,
            sequence=sequence,
        )
        logger.log_advice(sequence, result.kind.value, superseded=sequence < self.issued)
        return self.state
