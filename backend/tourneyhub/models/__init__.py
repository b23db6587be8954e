from .user import User
from .tournament import Tournament
from .division import Division, Group
from .team import Team, Player, GroupStanding
from .venue import Venue, Pitch
from .assignment import TournamentAssignment
from .invitation import UserInvitation

__all__ = [
    "User",
    "Tournament",
    "Division",
    "Group",
    "Team",
    "Player",
    "GroupStanding",
    "Venue",
    "Pitch",
    "TournamentAssignment",
    "UserInvitation",
]
