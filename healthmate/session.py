"""
HealthMate — Dashboard sessions

One DashboardSession per user session: a record store, the advice state
built from it, and a chat transcript. Nothing is shared between sessions and
nothing outlives `end()`.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional

from healthmate import secrets_manager
from healthmate.advice import AdviceGenerator, AdviceState
from healthmate.api_exceptions import ConflictError, ResourceNotFoundError
from healthmate.chat import ChatSession
from healthmate.completion import CompletionClient
from healthmate.records import HealthRecordStore, Snapshot

logger = logging.getLogger(__name__)


class DashboardSession:
    def __init__(
        self,
        client: CompletionClient,
        session_id: Optional[str] = None,
        store: Optional[HealthRecordStore] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.store = store or HealthRecordStore()
        self.advice = AdviceGenerator(client)
        self.chat = ChatSession(client, session_id=self.session_id)
        self._tasks: set[asyncio.Task] = set()
        self.last_seen = 0.0
        self.store.subscribe(self._on_records_changed)

    @property
    def advice_state(self) -> AdviceState:
        return self.advice.state

    def start(self) -> None:
        """Kick off the first advice generation. Needs a running event loop."""
        self.schedule_advice(self.store.snapshot())

    def schedule_advice(self, records: Snapshot) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.advice.generate(records))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _on_records_changed(self, records: Snapshot) -> None:
        self.schedule_advice(records)

    async def refresh_advice(self) -> AdviceState:
        """Manual refresh; runs alongside any regeneration already in flight."""
        await self.advice.generate(self.store.snapshot())
        return self.advice.state

    async def settle(self) -> None:
        """Wait for every scheduled advice regeneration to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        await self.settle()
        logger.info(f"Session {self.session_id} closed with {len(self.chat)} chat turns")


class SessionRegistry:
    """Live dashboard sessions keyed by session id.

    A session idle for longer than `ttl_seconds` is ended by the next
    `expire_idle()`; `find()` never creates one.
    """

    def __init__(
        self,
        client: CompletionClient,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else secrets_manager.get_session_ttl()
        self.clock = clock
        self._sessions: dict[str, DashboardSession] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def all(self) -> list[DashboardSession]:
        return list(self._sessions.values())

    def create(self, session_id: Optional[str] = None) -> DashboardSession:
        if session_id is not None and session_id in self._sessions:
            raise ConflictError(f"Session already exists: {session_id}")
        session = DashboardSession(self.client, session_id=session_id)
        session.last_seen = self.clock()
        self._sessions[session.session_id] = session
        session.start()
        logger.info(f"Session {session.session_id} created")
        return session

    def find(self, session_id: Optional[str]) -> Optional[DashboardSession]:
        """The live session for `session_id`, or None. Marks it as seen."""
        session = self._sessions.get(session_id) if session_id else None
        if session is not None:
            session.last_seen = self.clock()
        return session

    def get(self, session_id: Optional[str]) -> DashboardSession:
        session = self.find(session_id)
        if session is None:
            raise ResourceNotFoundError("Session", str(session_id))
        return session

    def get_or_create(self, session_id: Optional[str]) -> DashboardSession:
        return self.find(session_id) or self.create(session_id)

    async def expire_idle(self) -> int:
        """End every session idle longer than the TTL. Returns how many ended."""
        cutoff = self.clock() - self.ttl_seconds
        expired = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
        for session_id in expired:
            session = self._sessions.pop(session_id, None)
            if session is not None:
                logger.info(f"Session {session_id} expired after {self.ttl_seconds:g}s idle")
                await session.close()
        return len(expired)

    async def end(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise ResourceNotFoundError("Session", session_id)
        await session.close()

    async def end_all(self) -> None:
        for session_id in list(self._sessions):
            await self.end(session_id)
