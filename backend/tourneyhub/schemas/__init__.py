from .capability import CapabilitySet
from .user import UserPublic
from .tournament import (
    TournamentCreate,
    TournamentPublic,
    TournamentTree,
    PublicationUpdate,
    DivisionCreate,
    DivisionTree,
    GroupCreate,
    GroupTree,
    TeamCreate,
    TeamSummary,
)
from .lock import DivisionLockStatus, TournamentLockStatus
from .public import (
    Visibility,
    PublicTournament,
    PublicTeam,
    PublicGroup,
    PublicDivision,
    PublicVenue,
)
from .assignment import AssignmentPublic, AssignmentUpdate
from .invitation import InvitationCreate, InvitationAccept, InvitationPublic, InvitationAcceptResponse

__all__ = [
    "CapabilitySet",
    "UserPublic",
    "TournamentCreate",
    "TournamentPublic",
    "TournamentTree",
    "PublicationUpdate",
    "DivisionCreate",
    "DivisionTree",
    "GroupCreate",
    "GroupTree",
    "TeamCreate",
    "TeamSummary",
    "DivisionLockStatus",
    "TournamentLockStatus",
    "Visibility",
    "PublicTournament",
    "PublicTeam",
    "PublicGroup",
    "PublicDivision",
    "PublicVenue",
    "AssignmentPublic",
    "AssignmentUpdate",
    "InvitationCreate",
    "InvitationAccept",
    "InvitationPublic",
    "InvitationAcceptResponse",
]
