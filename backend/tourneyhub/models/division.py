from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel


class Division(SQLModel, table=True):
    __tablename__ = "divisions"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tournament_id: str = Field(foreign_key="tournaments.id", index=True)
    name: str
    position: int = Field(default=0)
    is_locked: bool = Field(default=False)
    locked_at: datetime | None = Field(default=None)
    locked_by: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Group(SQLModel, table=True):
    """
    Groups have no lock state of their own; they are frozen with their division.
    """

    __tablename__ = "groups"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    division_id: str = Field(foreign_key="divisions.id", index=True)
    name: str
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
