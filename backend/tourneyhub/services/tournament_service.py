import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..access.lock_rules import division_lock_status, tournament_lock_status
from ..errors import AlreadyLocked, Forbidden, NotFound
from ..models import Division, Group, Team, Tournament, User
from ..schemas.lock import DivisionLockStatus, TournamentLockStatus
from ..schemas.tournament import (
    DivisionCreate,
    DivisionTree,
    GroupCreate,
    PublicationUpdate,
    TeamCreate,
    TournamentCreate,
    TournamentTree,
)
from .lock_service import LockService
from .permission_service import PermissionManager, is_global_admin
from .repository import TournamentRepository

logger = logging.getLogger(__name__)


class TournamentService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = TournamentRepository(session)
        self.permissions = PermissionManager(session, self.repository)
        self.locks = LockService(session, self.repository, self.permissions)

    async def create(self, *, creator: User, payload: TournamentCreate) -> Tournament:
        tournament = Tournament(
            name=payload.name,
            organization_id=payload.organization_id,
            created_by_id=creator.id,
        )
        self.session.add(tournament)
        await self.session.flush()

        # the creator configures their own tournament through a normal assignment row
        await self.repository.upsert_assignment(
            user_id=creator.id,
            tournament_id=tournament.id,
            can_configure=True,
            can_manage_scores=True,
            is_referee=False,
            assigned_by=creator.id,
            merge=True,
        )
        await self.session.commit()
        await self.session.refresh(tournament)
        logger.info("Tournament %s created by %s", tournament.id, creator.id)
        return tournament

    async def get_tree(self, *, tournament_id: str, user: User) -> TournamentTree:
        tree = await self.repository.get_tournament_tree(tournament_id)
        if not tree:
            raise NotFound("Tournament not found")
        capabilities = await self.permissions.resolve(user.id, tournament_id)
        if not capabilities.has_any:
            raise Forbidden("You do not have access to this tournament")
        return tree

    async def lock_status(self, *, tournament_id: str, user: User) -> TournamentLockStatus:
        tree = await self.get_tree(tournament_id=tournament_id, user=user)
        return tournament_lock_status(
            tree,
            acting_user_id=user.id,
            acting_user_is_admin=is_global_admin(user.role),
        )

    async def division_lock_status(self, *, division_id: str, user: User) -> DivisionLockStatus:
        tree = await self._division_tree(division_id)
        capabilities = await self.permissions.resolve(user.id, tree.tournament_id)
        if not capabilities.has_any:
            raise Forbidden("You do not have access to this tournament")
        return division_lock_status(
            tree,
            acting_user_id=user.id,
            acting_user_is_admin=is_global_admin(user.role),
        )

    async def update_publication(self, *, tournament_id: str, payload: PublicationUpdate, user: User) -> Tournament:
        tournament = await self._configurable_tournament(tournament_id, user)
        for field, value in payload.model_dump(exclude_none=True).items():
            setattr(tournament, field, value)
        self.session.add(tournament)
        await self.session.commit()
        await self.session.refresh(tournament)
        logger.info("Publication flags of tournament %s updated by %s", tournament_id, user.id)
        return tournament

    async def add_division(self, *, tournament_id: str, payload: DivisionCreate, user: User) -> DivisionTree:
        await self._configurable_tournament(tournament_id, user)
        statement = select(Tournament).where(Tournament.id == tournament_id).with_for_update()
        tournament = (await self.session.execute(statement)).scalar_one()
        if tournament.is_locked:
            raise AlreadyLocked("Tournament is locked")

        position = await self._next_position(Division.position, Division.tournament_id == tournament_id)
        division = Division(tournament_id=tournament_id, name=payload.name, position=position)
        self.session.add(division)
        await self.session.commit()
        return await self._division_tree(division.id)

    async def add_group(self, *, division_id: str, payload: GroupCreate, user: User) -> DivisionTree:
        division = await self._configurable_division(division_id, user)
        await self.locks.ensure_division_unlocked(division.id)

        position = await self._next_position(Group.position, Group.division_id == division.id)
        self.session.add(Group(division_id=division.id, name=payload.name, position=position))
        await self.session.commit()
        return await self._division_tree(division.id)

    async def add_team(self, *, group_id: str, payload: TeamCreate, user: User) -> DivisionTree:
        group = await self.repository.get_group(group_id)
        if not group:
            raise NotFound("Group not found")
        division = await self._configurable_division(group.division_id, user)
        await self.locks.ensure_division_unlocked(division.id)

        team = Team(
            tournament_id=division.tournament_id,
            division_id=division.id,
            group_id=group.id,
            name=payload.name,
            short_name=payload.short_name,
            city=payload.city,
        )
        self.session.add(team)
        await self.session.commit()
        return await self._division_tree(division.id)

    async def remove_team(self, *, group_id: str, team_id: str, user: User) -> DivisionTree:
        group = await self.repository.get_group(group_id)
        if not group:
            raise NotFound("Group not found")
        division = await self._configurable_division(group.division_id, user)
        await self.locks.ensure_division_unlocked(division.id)

        team = await self.repository.get_team(team_id)
        if not team or team.group_id != group.id:
            raise NotFound("Team not found in this group")
        team.group_id = None
        self.session.add(team)
        await self.session.commit()
        return await self._division_tree(division.id)

    async def _configurable_tournament(self, tournament_id: str, user: User) -> Tournament:
        tournament = await self.repository.get_tournament(tournament_id)
        if not tournament:
            raise NotFound("Tournament not found")
        if not await self.permissions.can_configure(user.id, tournament_id):
            raise Forbidden("You do not have permission to configure this tournament")
        return tournament

    async def _configurable_division(self, division_id: str, user: User) -> Division:
        division = await self.repository.get_division(division_id)
        if not division:
            raise NotFound("Division not found")
        if not await self.permissions.can_configure(user.id, division.tournament_id):
            raise Forbidden("You do not have permission to configure this tournament")
        return division

    async def _next_position(self, column, condition) -> int:
        statement = select(func.max(column)).where(condition)
        current: Optional[int] = (await self.session.execute(statement)).scalar()
        return 0 if current is None else current + 1

    async def _division_tree(self, division_id: str) -> DivisionTree:
        tree = await self.repository.get_division_tree(division_id)
        if not tree:
            raise NotFound("Division not found")
        return tree
