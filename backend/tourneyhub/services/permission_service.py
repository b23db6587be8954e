from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..enums import UserRole
from ..schemas.capability import CapabilitySet
from .repository import TournamentRepository


def is_global_admin(role: Optional[UserRole]) -> bool:
    return role == UserRole.ADMIN


def can_configure_tournament(capabilities: CapabilitySet) -> bool:
    return capabilities.can_configure


def can_manage_tournament_scores(capabilities: CapabilitySet) -> bool:
    return capabilities.can_manage_scores


def is_tournament_referee(capabilities: CapabilitySet) -> bool:
    return capabilities.is_referee


class PermissionManager:
    """
    Resolves what a user may do on one tournament.

    The decision table is flat: a global ADMIN gets everything, anyone else
    gets exactly what their active assignment row grants, and no row means
    no tournament-scoped capability at all. Unknown users and tournaments
    resolve to the empty set rather than raising.
    """

    def __init__(self, session: AsyncSession, repository: Optional[TournamentRepository] = None) -> None:
        self.session = session
        self.repository = repository or TournamentRepository(session)

    async def resolve(self, user_id: Optional[str], tournament_id: str) -> CapabilitySet:
        if not user_id:
            return CapabilitySet.minimal()

        if is_global_admin(await self.repository.get_global_role(user_id)):
            return CapabilitySet.maximal()

        assignment = await self.repository.get_assignment(user_id, tournament_id)
        if not assignment:
            return CapabilitySet.minimal()

        return CapabilitySet(
            can_configure=assignment.can_configure,
            can_manage_scores=assignment.can_manage_scores,
            is_referee=assignment.is_referee,
            is_admin=False,
        )

    async def can_configure(self, user_id: Optional[str], tournament_id: str) -> bool:
        return can_configure_tournament(await self.resolve(user_id, tournament_id))

    async def can_manage_scores(self, user_id: Optional[str], tournament_id: str) -> bool:
        return can_manage_tournament_scores(await self.resolve(user_id, tournament_id))

    async def is_referee(self, user_id: Optional[str], tournament_id: str) -> bool:
        return is_tournament_referee(await self.resolve(user_id, tournament_id))

    async def is_admin(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return is_global_admin(await self.repository.get_global_role(user_id))
