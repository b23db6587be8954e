from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel

from ..enums import UserRole


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str | None = Field(default=None)
    role: UserRole = Field(default=UserRole.TEAM_MANAGER)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
