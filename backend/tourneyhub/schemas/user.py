from datetime import datetime

from pydantic import BaseModel

from ..enums import UserRole


class UserPublic(BaseModel):
    id: str
    email: str
    name: str | None = None
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True
