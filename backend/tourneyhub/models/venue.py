from uuid import uuid4

from sqlmodel import Field, SQLModel


class Venue(SQLModel, table=True):
    __tablename__ = "venues"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tournament_id: str = Field(foreign_key="tournaments.id", index=True)
    name: str
    street_name: str | None = Field(default=None)
    postal_code: str | None = Field(default=None)
    city: str | None = Field(default=None)
    latitude: float | None = Field(default=None)
    longitude: float | None = Field(default=None)


class Pitch(SQLModel, table=True):
    __tablename__ = "pitches"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    venue_id: str = Field(foreign_key="venues.id", index=True)
    name: str
    surface: str | None = Field(default=None)
