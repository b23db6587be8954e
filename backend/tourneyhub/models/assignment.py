from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class TournamentAssignment(SQLModel, table=True):
    __tablename__ = "tournament_assignments"
    __table_args__ = (UniqueConstraint("user_id", "tournament_id", name="uq_assignment_user_tournament"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    tournament_id: str = Field(foreign_key="tournaments.id", index=True)
    can_configure: bool = Field(default=False)
    can_manage_scores: bool = Field(default=False)
    is_referee: bool = Field(default=False)
    is_active: bool = Field(default=True)
    assigned_by: str | None = Field(default=None)
    assigned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
