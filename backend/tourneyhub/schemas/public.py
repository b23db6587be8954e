from typing import List

from pydantic import BaseModel


class Visibility(BaseModel):
    can_view_tournament: bool = False
    can_view_teams: bool = False
    can_view_standings: bool = False
    can_view_info: bool = False


class PublicTournament(BaseModel):
    id: str
    name: str
    visibility: Visibility


class PublicPlayer(BaseModel):
    id: str
    first_name: str
    last_name: str
    jersey_number: int | None = None
    position: str | None = None

    class Config:
        from_attributes = True


class DivisionRef(BaseModel):
    id: str
    name: str


class PublicTeam(BaseModel):
    id: str
    name: str
    short_name: str | None = None
    city: str | None = None
    division: DivisionRef | None = None
    player_count: int = 0
    players: List[PublicPlayer] = []


class PublicGroupTeam(BaseModel):
    id: str
    name: str
    short_name: str | None = None
    city: str | None = None

    class Config:
        from_attributes = True


class PublicStanding(BaseModel):
    team_id: str
    team_name: str
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int


class PublicGroup(BaseModel):
    id: str
    name: str
    division: DivisionRef
    teams: List[PublicGroupTeam] = []
    standings: List[PublicStanding] = []


class PublicDivision(BaseModel):
    id: str
    name: str
    groups: List[PublicGroup] = []


class PublicPitch(BaseModel):
    id: str
    name: str
    surface: str | None = None

    class Config:
        from_attributes = True


class PublicVenue(BaseModel):
    id: str
    name: str
    street_name: str | None = None
    postal_code: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    pitches: List[PublicPitch] = []
