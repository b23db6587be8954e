import logging
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Forbidden, NotFound
from ..models import TournamentAssignment, User
from ..schemas.assignment import AssignmentUpdate
from .permission_service import PermissionManager
from .repository import TournamentRepository

logger = logging.getLogger(__name__)


class AssignmentService:
    def __init__(
        self,
        session: AsyncSession,
        repository: Optional[TournamentRepository] = None,
        permissions: Optional[PermissionManager] = None,
    ) -> None:
        self.session = session
        self.repository = repository or TournamentRepository(session)
        self.permissions = permissions or PermissionManager(session, self.repository)

    async def _require_configure(self, user: User, tournament_id: str) -> None:
        if not await self.repository.get_tournament(tournament_id):
            raise NotFound("Tournament not found")
        if not await self.permissions.can_configure(user.id, tournament_id):
            raise Forbidden("Insufficient permissions")

    async def list_for_tournament(self, *, tournament_id: str, user: User) -> Sequence[TournamentAssignment]:
        await self._require_configure(user, tournament_id)
        return await self.repository.list_assignments(tournament_id)

    async def set_assignment(
        self,
        *,
        tournament_id: str,
        target_user_id: str,
        payload: AssignmentUpdate,
        user: User,
    ) -> TournamentAssignment:
        await self._require_configure(user, tournament_id)
        if not await self.repository.get_user(target_user_id):
            raise NotFound("User not found")

        assignment = await self.repository.upsert_assignment(
            user_id=target_user_id,
            tournament_id=tournament_id,
            can_configure=payload.can_configure,
            can_manage_scores=payload.can_manage_scores,
            is_referee=payload.is_referee,
            assigned_by=user.id,
            merge=False,
        )
        await self.session.commit()
        await self.session.refresh(assignment)
        logger.info(
            "Assignment for %s on tournament %s set by %s (configure=%s, scores=%s, referee=%s)",
            target_user_id,
            tournament_id,
            user.id,
            assignment.can_configure,
            assignment.can_manage_scores,
            assignment.is_referee,
        )
        return assignment

    async def deactivate(self, *, tournament_id: str, target_user_id: str, user: User) -> TournamentAssignment:
        await self._require_configure(user, tournament_id)
        assignment = await self.repository.get_assignment(target_user_id, tournament_id)
        if not assignment:
            raise NotFound("Assignment not found")

        assignment.is_active = False
        self.session.add(assignment)
        await self.session.commit()
        await self.session.refresh(assignment)
        logger.info("Assignment for %s on tournament %s deactivated by %s", target_user_id, tournament_id, user.id)
        return assignment
