"""
HealthMate — Health Record Store

Holds one week of daily metrics, Monday → Sunday. Records are replaced in
place when a day is edited; the seven day labels and their order never
change. Subscribers get a fresh snapshot after every edit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Optional

from healthmate.api_exceptions import ValidationError

logger = logging.getLogger(__name__)

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class HealthRecord:
    day:         str
    steps:       int
    sleep_hours: float
    diet_note:   str

    def summary_line(self) -> str:
        """One-line form used inside the advice prompt."""
        return f"{self.day}: 步数 {self.steps}, 睡眠 {self.sleep_hours:g}小时, 饮食: {self.diet_note}"


DEFAULT_WEEK = (
    HealthRecord("Mon", 8200,  7,   "早餐：鸡蛋；午餐：米饭+蔬菜；晚餐：面条"),
    HealthRecord("Tue", 9000,  6.5, "早餐：燕麦；午餐：炒饭；晚餐：鸡肉沙拉"),
    HealthRecord("Wed", 7600,  8,   "早餐：牛奶+面包；午餐：面条；晚餐：鱼"),
    HealthRecord("Thu", 10000, 7.5, "早餐：煎蛋；午餐：米饭+蔬菜；晚餐：汤"),
    HealthRecord("Fri", 9400,  6,   "早餐：豆浆+包子；午餐：面条；晚餐：炒菜"),
    HealthRecord("Sat", 12000, 8,   "早餐：燕麦+水果；午餐：炒饭；晚餐：鸡胸肉"),
    HealthRecord("Sun", 8800,  7,   "早餐：牛奶+三明治；午餐：面条；晚餐：沙拉"),
)

Snapshot = tuple[HealthRecord, ...]
Subscriber = Callable[[Snapshot], None]


def today_index(today: Optional[date] = None) -> int:
    """Index of `today` in the week, Monday = 0."""
    return (today or date.today()).weekday()


def _validate(record: HealthRecord) -> HealthRecord:
    if record.day not in WEEKDAYS:
        raise ValidationError(f"Unknown day label: {record.day}", field="day")
    if isinstance(record.steps, bool) or not isinstance(record.steps, int):
        raise ValidationError("Steps must be an integer", field="steps")
    if record.steps < 0:
        raise ValidationError("Steps cannot be negative", field="steps")
    if record.sleep_hours < 0:
        raise ValidationError("Sleep hours cannot be negative", field="sleep_hours")
    return record


class HealthRecordStore:
    """Seven ordered records plus change notification."""

    def __init__(self, records: Optional[Snapshot] = None):
        records = tuple(records) if records is not None else DEFAULT_WEEK
        labels = [r.day for r in records]
        if labels != list(WEEKDAYS):
            raise ValidationError(
                "Records must cover Mon..Sun exactly once, in order",
                details={"days": labels},
            )
        self._records = [_validate(r) for r in records]
        self._subscribers: list[Subscriber] = []

    # ──────────────────────────────────────────────
    # READ
    # ──────────────────────────────────────────────

    def snapshot(self) -> Snapshot:
        return tuple(self._records)

    def today(self, today: Optional[date] = None) -> HealthRecord:
        return self._records[today_index(today)]

    def weekly_summary(self) -> dict:
        steps = [r.steps for r in self._records]
        sleep = [r.sleep_hours for r in self._records]
        return {
            "total_steps":   sum(steps),
            "avg_steps":     round(sum(steps) / len(steps), 1),
            "avg_sleep":     round(sum(sleep) / len(sleep), 2),
            "most_active":   self._records[steps.index(max(steps))].day,
            "least_sleep":   self._records[sleep.index(min(sleep))].day,
        }

    # ──────────────────────────────────────────────
    # WRITE
    # ──────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def update(
        self,
        day: str,
        steps: Optional[int] = None,
        sleep_hours: Optional[float] = None,
        diet_note: Optional[str] = None,
    ) -> HealthRecord:
        """Edit one day. Unset, zero or blank values keep the current value."""
        if day not in WEEKDAYS:
            raise ValidationError(f"Unknown day label: {day}", field="day")
        idx = WEEKDAYS.index(day)
        current = self._records[idx]

        changes = {}
        if steps:
            changes["steps"] = steps
        if sleep_hours:
            changes["sleep_hours"] = sleep_hours
        if diet_note and diet_note.strip():
            changes["diet_note"] = diet_note

        updated = _validate(replace(current, **changes))
        self._records[idx] = updated
        logger.info(f"Record for {day} updated: {sorted(changes) or 'no changes'}")
        self._notify()
        return updated

    def update_today(
        self,
        steps: Optional[int] = None,
        sleep_hours: Optional[float] = None,
        diet_note: Optional[str] = None,
        today: Optional[date] = None,
    ) -> HealthRecord:
        return self.update(WEEKDAYS[today_index(today)], steps, sleep_hours, diet_note)

    def _notify(self) -> None:
        snap = self.snapshot()
        for callback in self._subscribers:
            callback(snap)
