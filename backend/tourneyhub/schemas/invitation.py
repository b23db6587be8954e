from datetime import datetime

from pydantic import BaseModel, EmailStr

from ..enums import InvitationStatus


class InvitationCreate(BaseModel):
    email: EmailStr
    can_configure: bool = False
    can_manage_scores: bool = False
    is_referee: bool = False


class InvitationAccept(BaseModel):
    token: str


class InvitationPublic(BaseModel):
    id: str
    email: str
    tournament_id: str | None = None
    can_configure: bool
    can_manage_scores: bool
    is_referee: bool
    status: InvitationStatus
    expires: datetime
    inviter_id: str
    invited_user_id: str | None = None
    accepted_at: datetime | None = None
    invitation_url: str


class InvitationAcceptResponse(BaseModel):
    message: str
    tournament_id: str | None = None
    tournament_name: str | None = None
