from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class TournamentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    organization_id: str | None = None


class PublicationUpdate(BaseModel):
    tournament_visible: bool | None = None
    teams_published: bool | None = None
    standings_published: bool | None = None
    info_published: bool | None = None


class TournamentPublic(BaseModel):
    id: str
    name: str
    organization_id: str | None = None
    created_by_id: str
    is_locked: bool
    locked_at: datetime | None = None
    locked_by: str | None = None
    tournament_visible: bool
    teams_published: bool
    standings_published: bool
    info_published: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DivisionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    short_name: str | None = None
    city: str | None = None


class TeamSummary(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class GroupTree(BaseModel):
    id: str
    name: str
    teams: List[TeamSummary] = []

    class Config:
        from_attributes = True


class DivisionTree(BaseModel):
    id: str
    tournament_id: str
    name: str
    is_locked: bool
    locked_at: datetime | None = None
    locked_by: str | None = None
    groups: List[GroupTree] = []

    class Config:
        from_attributes = True


class TournamentTree(TournamentPublic):
    divisions: List[DivisionTree] = []
