"""Session store protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from curation_tournament.models import SessionStatus, TournamentSession


@dataclass(frozen=True)
class StoredSession:
    """A session as read from a store, with the version it was read at."""

    session: TournamentSession
    version: int


@runtime_checkable
class SessionStore(Protocol):
    """Keyed store for tournament sessions with optimistic versioning.

    Implementations own the persisted bytes. Every ``get`` returns a fresh
    copy, so callers can mutate it freely before writing it back.
    """

    async def get(self, session_id: str) -> StoredSession | None:
        """Read a session.

        Args:
            session_id: Session identifier.

        Returns:
            StoredSession, or None if no such session exists.
        """
        ...

    async def put(self, session: TournamentSession, expected_version: int | None) -> int:
        """Write a session if nobody else wrote it since it was read.

        Args:
            session: Session to persist.
            expected_version: Version the caller read, or None to create.

        Returns:
            The new version.

        Raises:
            ConcurrentAdvanceConflict: If the stored version differs from
                ``expected_version`` (or the session exists on create).
            SessionNotFound: If updating a session that does not exist.
        """
        ...

    async def list(
        self,
        status: SessionStatus | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[TournamentSession], int]:
        """List sessions newest first by ``created_at``.

        Returns:
            Tuple of (sessions in the requested window, total matching).
        """
        ...
