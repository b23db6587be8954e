from datetime import datetime
from typing import List

from pydantic import BaseModel


class DivisionLockStatus(BaseModel):
    division_id: str
    division_name: str
    is_locked: bool
    locked_at: datetime | None = None
    locked_by: str | None = None
    groups_count: int
    teams_count: int
    can_lock: bool
    can_unlock: bool
    reason: str | None = None


class TournamentLockStatus(BaseModel):
    tournament_id: str
    is_locked: bool
    locked_at: datetime | None = None
    locked_by: str | None = None
    divisions: List[DivisionLockStatus]
    can_lock: bool
    can_unlock: bool
    reason: str | None = None
