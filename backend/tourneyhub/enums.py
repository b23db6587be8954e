from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEAM_MANAGER = "TEAM_MANAGER"
    TOURNAMENT_ADMIN = "TOURNAMENT_ADMIN"
    REFEREE = "REFEREE"


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class LockTarget(str, Enum):
    TOURNAMENT = "tournament"
    DIVISION = "division"
