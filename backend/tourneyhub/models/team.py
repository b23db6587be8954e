from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tournament_id: str = Field(foreign_key="tournaments.id", index=True)
    division_id: str | None = Field(default=None, foreign_key="divisions.id", index=True)
    group_id: str | None = Field(default=None, foreign_key="groups.id", index=True)
    name: str
    short_name: str | None = Field(default=None)
    city: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Player(SQLModel, table=True):
    __tablename__ = "players"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    team_id: str = Field(foreign_key="teams.id", index=True)
    first_name: str
    last_name: str
    jersey_number: int | None = Field(default=None)
    position: str | None = Field(default=None)


class GroupStanding(SQLModel, table=True):
    __tablename__ = "group_standings"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    group_id: str = Field(foreign_key="groups.id", index=True)
    team_id: str = Field(foreign_key="teams.id", index=True)
    played: int = Field(default=0)
    won: int = Field(default=0)
    drawn: int = Field(default=0)
    lost: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    points: int = Field(default=0)
