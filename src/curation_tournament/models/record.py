from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class SessionRecord(SQLModel, table=True):
    """Persisted tournament session, serialized as JSON with a version counter.

    Timestamp columns are plain (naive) ``DateTime`` holding UTC; the aware
    values live in the JSON payload.
    """

    __tablename__ = "tournament_sessions"

    id: str = Field(primary_key=True)
    status: str
    curator: str
    version: int = 1
    payload: str
    created_at: datetime = Field(sa_type=DateTime(), index=True)
    updated_at: datetime = Field(sa_type=DateTime())
