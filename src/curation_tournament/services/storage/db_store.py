"""Database storage for tournament sessions using SQLModel."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, col, create_engine, func, select, update

from curation_tournament.core.config import DEFAULT_STORE_URL
from curation_tournament.core.errors import ConcurrentAdvanceConflict, SessionNotFound
from curation_tournament.models import SessionRecord, SessionStatus, TournamentSession

from .base import StoredSession

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

T = TypeVar("T")


def _naive_utc(value: datetime) -> datetime:
    """Index columns hold naive UTC; the JSON payload keeps the original value."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None)


class DBSessionStore:
    """Session store over any SQLAlchemy URL (DuckDB by default).

    One row per session: the JSON payload plus status, curator, timestamps
    and a version counter. Updates are a single conditional ``UPDATE ...
    WHERE version = expected``, so two stores sharing one database cannot both
    win the same version; the loser gets ``ConcurrentAdvanceConflict``.
    """

    def __init__(self, url: str = DEFAULT_STORE_URL, engine: Engine | None = None) -> None:
        """Initialize the store and create tables.

        Args:
            url: SQLAlchemy database URL.
            engine: Pre-built engine; overrides ``url``.
        """
        if engine is None:
            # NullPool avoids DuckDB file locks lingering in pooled connections
            kwargs = {"poolclass": NullPool} if url.startswith("duckdb") else {}
            engine = create_engine(url, **kwargs)
        self._engine = engine
        self._write_lock = asyncio.Lock()
        SQLModel.metadata.create_all(self._engine)
        logger.info("store_init", url=str(self._engine.url))

    async def _run_session(self, fn: Callable[[Session], T]) -> T:
        """Run a sync function inside a Session on a worker thread."""

        def _run() -> T:
            with Session(self._engine) as session:
                return fn(session)

        return await asyncio.to_thread(_run)

    async def get(self, session_id: str) -> StoredSession | None:
        def _get(session: Session) -> StoredSession | None:
            record = session.get(SessionRecord, session_id)
            if record is None:
                return None
            return StoredSession(
                TournamentSession.model_validate_json(record.payload), record.version
            )

        return await self._run_session(_get)

    async def put(self, tournament: TournamentSession, expected_version: int | None) -> int:
        payload = tournament.model_dump_json()

        def _create(session: Session) -> int:
            if session.get(SessionRecord, tournament.id) is not None:
                raise ConcurrentAdvanceConflict(tournament.id, "create")
            session.add(
                SessionRecord(
                    id=tournament.id,
                    status=tournament.status.value,
                    curator=tournament.curator,
                    version=1,
                    payload=payload,
                    created_at=_naive_utc(tournament.created_at),
                    updated_at=_naive_utc(tournament.updated_at),
                )
            )
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ConcurrentAdvanceConflict(tournament.id, "create") from e
            return 1

        def _update(session: Session, expected: int) -> int:
            stmt = (
                update(SessionRecord)
                .where(
                    col(SessionRecord.id) == tournament.id,
                    col(SessionRecord.version) == expected,
                )
                .values(
                    version=expected + 1,
                    status=tournament.status.value,
                    payload=payload,
                    updated_at=_naive_utc(tournament.updated_at),
                )
                .returning(col(SessionRecord.version))
            )
            row = session.connection().execute(stmt).first()
            if row is None:
                session.rollback()
                if session.get(SessionRecord, tournament.id) is None:
                    raise SessionNotFound(tournament.id)
                raise ConcurrentAdvanceConflict(tournament.id)
            session.commit()
            return row[0]

        def _save(session: Session) -> int:
            if expected_version is None:
                return _create(session)
            return _update(session, expected_version)

        async with self._write_lock:
            version = await self._run_session(_save)
        logger.debug("session_saved", session_id=tournament.id, version=version)
        return version

    async def list(
        self,
        status: SessionStatus | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[TournamentSession], int]:
        def _list(session: Session) -> tuple[list[TournamentSession], int]:
            count_stmt = select(func.count()).select_from(SessionRecord)
            page_stmt = select(SessionRecord)
            if status is not None:
                count_stmt = count_stmt.where(SessionRecord.status == status.value)
                page_stmt = page_stmt.where(SessionRecord.status == status.value)
            total = session.exec(count_stmt).one()
            page_stmt = (
                page_stmt.order_by(col(SessionRecord.created_at).desc()).offset(offset).limit(limit)
            )
            records = session.exec(page_stmt).all()
            return [TournamentSession.model_validate_json(r.payload) for r in records], total

        return await self._run_session(_list)

    async def close(self) -> None:
        """Dispose of the database engine."""
        self._engine.dispose()
