"""In-process session store."""

from __future__ import annotations

import asyncio

import structlog

from curation_tournament.core.errors import ConcurrentAdvanceConflict, SessionNotFound
from curation_tournament.models import SessionStatus, TournamentSession

from .base import StoredSession

logger = structlog.get_logger()


class InMemorySessionStore:
    """Session store backed by a dict of serialized JSON payloads.

    Sessions are kept as JSON text so reads hand out independent copies and
    two reads without an intervening write are byte-identical.
    """

    def __init__(self) -> None:
        self._records: dict[str, tuple[int, str]] = {}
        self._lock = asyncio.Lock()

    async def get(self, session_id: str) -> StoredSession | None:
        record = self._records.get(session_id)
        if record is None:
            return None
        version, payload = record
        return StoredSession(TournamentSession.model_validate_json(payload), version)

    async def put(self, session: TournamentSession, expected_version: int | None) -> int:
        async with self._lock:
            current = self._records.get(session.id)
            if expected_version is None:
                if current is not None:
                    raise ConcurrentAdvanceConflict(session.id, "create")
                new_version = 1
            else:
                if current is None:
                    raise SessionNotFound(session.id)
                if current[0] != expected_version:
                    raise ConcurrentAdvanceConflict(session.id)
                new_version = expected_version + 1

            self._records[session.id] = (new_version, session.model_dump_json())
            logger.debug("session_saved", session_id=session.id, version=new_version)
            return new_version

    async def list(
        self,
        status: SessionStatus | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[TournamentSession], int]:
        sessions = [
            TournamentSession.model_validate_json(payload)
            for _, payload in self._records.values()
        ]
        if status is not None:
            sessions = [s for s in sessions if s.status == status]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions[offset : offset + limit], len(sessions)
