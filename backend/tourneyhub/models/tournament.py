from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    organization_id: str | None = Field(default=None, index=True)
    created_by_id: str = Field(foreign_key="users.id")
    is_locked: bool = Field(default=False)
    locked_at: datetime | None = Field(default=None)
    locked_by: str | None = Field(default=None)
    tournament_visible: bool = Field(default=False)
    teams_published: bool = Field(default=False)
    standings_published: bool = Field(default=False)
    info_published: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
