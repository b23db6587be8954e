from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel

from ..enums import InvitationStatus


class UserInvitation(SQLModel, table=True):
    __tablename__ = "user_invitations"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(index=True)
    tournament_id: str | None = Field(default=None, foreign_key="tournaments.id", index=True)
    can_configure: bool = Field(default=False)
    can_manage_scores: bool = Field(default=False)
    is_referee: bool = Field(default=False)
    token: str = Field(index=True, unique=True)
    status: InvitationStatus = Field(default=InvitationStatus.PENDING)
    expires: datetime
    inviter_id: str = Field(foreign_key="users.id")
    invited_user_id: str | None = Field(default=None, foreign_key="users.id")
    accepted_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
