from datetime import datetime

from pydantic import BaseModel


class AssignmentUpdate(BaseModel):
    can_configure: bool = False
    can_manage_scores: bool = False
    is_referee: bool = False


class AssignmentPublic(BaseModel):
    id: str
    user_id: str
    tournament_id: str
    can_configure: bool
    can_manage_scores: bool
    is_referee: bool
    is_active: bool
    assigned_by: str | None = None
    assigned_at: datetime

    class Config:
        from_attributes = True
