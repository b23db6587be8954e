import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from ..access.lock_rules import can_lock_division, can_lock_tournament, can_unlock
from ..enums import LockTarget
from ..errors import AlreadyInState, AlreadyLocked, Forbidden, NotFound, NotLocked, StructuralInvalid
from ..models import Division, Group, Team, Tournament
from ..schemas.tournament import DivisionTree, TournamentTree
from .permission_service import PermissionManager
from .repository import LockState, TournamentRepository

logger = logging.getLogger(__name__)


def division_structure_guards(division_id: str) -> List[ColumnElement[bool]]:
    """SQL form of ``can_lock_division``: at least one group, no empty group."""
    has_group = select(Group.id).where(Group.division_id == division_id).exists()
    group_has_team = select(Team.id).where(Team.group_id == Group.id).correlate(Group).exists()
    has_empty_group = select(Group.id).where(Group.division_id == division_id, ~group_has_team).exists()
    return [has_group, ~has_empty_group]


def tournament_structure_guards(tournament_id: str) -> List[ColumnElement[bool]]:
    """SQL form of ``can_lock_tournament``: no unlocked division."""
    has_unlocked_division = (
        select(Division.id)
        .where(Division.tournament_id == tournament_id, Division.is_locked.is_(False))
        .exists()
    )
    return [~has_unlocked_division]


class LockService:
    """
    Lock/unlock transitions for divisions and tournaments.

    The two levels are independent state bits: locking a tournament requires
    its divisions to be locked already and never locks them, and unlocking
    either level leaves the other untouched.
    """

    def __init__(
        self,
        session: AsyncSession,
        repository: Optional[TournamentRepository] = None,
        permissions: Optional[PermissionManager] = None,
    ) -> None:
        self.session = session
        self.repository = repository or TournamentRepository(session)
        self.permissions = permissions or PermissionManager(session, self.repository)

    async def lock_division(self, *, division_id: str, acting_user_id: str) -> DivisionTree:
        division = await self.repository.get_division_tree(division_id)
        if not division:
            raise NotFound("Division not found")
        if not await self.permissions.can_configure(acting_user_id, division.tournament_id):
            raise Forbidden("You do not have permission to lock this division")
        if division.is_locked:
            raise AlreadyLocked("Division is already locked")

        check = can_lock_division(division)
        if not check.can_lock:
            logger.info("Division %s not lockable: %s", division_id, check.reason)
            raise StructuralInvalid(check.reason or "Division cannot be locked")

        await self._hold_divisions(Division.id == division_id)
        changed = await self.repository.set_lock_state(
            LockTarget.DIVISION,
            division_id,
            LockState(is_locked=True, locked_at=_now(), locked_by=acting_user_id),
            expected_locked=False,
            guards=division_structure_guards(division_id),
        )
        if not changed:
            await self.session.rollback()
            await self._raise_division_lock_conflict(division_id)

        await self.session.commit()
        logger.info("Division %s locked by %s", division_id, acting_user_id)
        return await self._division_tree_or_404(division_id)

    async def unlock_division(
        self,
        *,
        division_id: str,
        acting_user_id: str,
        acting_user_is_admin: bool,
    ) -> DivisionTree:
        division = await self.repository.get_division(division_id)
        if not division:
            raise NotFound("Division not found")
        self._check_unlock(
            division,
            acting_user_id=acting_user_id,
            acting_user_is_admin=acting_user_is_admin,
            label="division",
        )

        guards = [] if acting_user_is_admin else [Division.locked_by == acting_user_id]
        changed = await self.repository.set_lock_state(
            LockTarget.DIVISION,
            division_id,
            LockState.unlocked(),
            expected_locked=True,
            guards=guards,
        )
        if not changed:
            await self.session.rollback()
            current = await self.repository.get_division(division_id)
            if not current:
                raise NotFound("Division not found")
            self._check_unlock(
                current,
                acting_user_id=acting_user_id,
                acting_user_is_admin=acting_user_is_admin,
                label="division",
            )
            raise AlreadyInState("Division lock state changed concurrently")

        await self.session.commit()
        logger.info("Division %s unlocked by %s", division_id, acting_user_id)
        return await self._division_tree_or_404(division_id)

    async def lock_tournament(self, *, tournament_id: str, acting_user_id: str) -> TournamentTree:
        tournament = await self.repository.get_tournament(tournament_id)
        if not tournament:
            raise NotFound("Tournament not found")
        if not await self.permissions.can_configure(acting_user_id, tournament_id):
            raise Forbidden("You do not have permission to lock this tournament")
        if tournament.is_locked:
            raise AlreadyLocked("Tournament is already locked")

        divisions = await self.repository.list_divisions(tournament_id)
        check = can_lock_tournament(divisions)
        if not check.can_lock:
            logger.info("Tournament %s not lockable: %s", tournament_id, check.reason)
            raise StructuralInvalid(check.reason or "Tournament cannot be locked")

        await self._hold_divisions(Division.tournament_id == tournament_id)
        changed = await self.repository.set_lock_state(
            LockTarget.TOURNAMENT,
            tournament_id,
            LockState(is_locked=True, locked_at=_now(), locked_by=acting_user_id),
            expected_locked=False,
            guards=tournament_structure_guards(tournament_id),
        )
        if not changed:
            await self.session.rollback()
            await self._raise_tournament_lock_conflict(tournament_id)

        await self.session.commit()
        logger.info("Tournament %s locked by %s", tournament_id, acting_user_id)
        return await self._tournament_tree_or_404(tournament_id)

    async def unlock_tournament(
        self,
        *,
        tournament_id: str,
        acting_user_id: str,
        acting_user_is_admin: bool,
    ) -> TournamentTree:
        tournament = await self.repository.get_tournament(tournament_id)
        if not tournament:
            raise NotFound("Tournament not found")
        self._check_unlock(
            tournament,
            acting_user_id=acting_user_id,
            acting_user_is_admin=acting_user_is_admin,
            label="tournament",
        )

        guards = [] if acting_user_is_admin else [Tournament.locked_by == acting_user_id]
        changed = await self.repository.set_lock_state(
            LockTarget.TOURNAMENT,
            tournament_id,
            LockState.unlocked(),
            expected_locked=True,
            guards=guards,
        )
        if not changed:
            await self.session.rollback()
            current = await self.repository.get_tournament(tournament_id)
            if not current:
                raise NotFound("Tournament not found")
            self._check_unlock(
                current,
                acting_user_id=acting_user_id,
                acting_user_is_admin=acting_user_is_admin,
                label="tournament",
            )
            raise AlreadyInState("Tournament lock state changed concurrently")

        await self.session.commit()
        logger.info("Tournament %s unlocked by %s", tournament_id, acting_user_id)
        return await self._tournament_tree_or_404(tournament_id)

    async def ensure_division_unlocked(self, division_id: str) -> Division:
        """
        Gate for structural writes under a division.

        The division row is read ``FOR UPDATE`` so a concurrent lock waits for
        the structural write to commit (a no-op on SQLite, which serializes
        writers anyway).
        """
        statement = select(Division).where(Division.id == division_id).with_for_update()
        division = (await self.session.execute(statement)).scalar_one_or_none()
        if not division:
            raise NotFound("Division not found")
        if division.is_locked:
            raise AlreadyLocked("Division is locked")
        return division

    async def _hold_divisions(self, *conditions: ColumnElement[bool]) -> None:
        """
        Row-lock the divisions a lock transition depends on.

        Structural writes hold the same row through ``ensure_division_unlocked``,
        so the guarded UPDATE that follows starts only after they commit and,
        under READ COMMITTED, evaluates its guards against their result.
        """
        statement = select(Division.id).where(*conditions).with_for_update()
        await self.session.execute(statement)

    @staticmethod
    def _check_unlock(entity, *, acting_user_id: str, acting_user_is_admin: bool, label: str) -> None:
        if not entity.is_locked:
            raise NotLocked(f"{label.capitalize()} is not locked")
        if not can_unlock(
            is_locked=entity.is_locked,
            locked_by=entity.locked_by,
            acting_user_id=acting_user_id,
            acting_user_is_admin=acting_user_is_admin,
        ):
            raise Forbidden(f"You do not have permission to unlock this {label}")

    async def _raise_division_lock_conflict(self, division_id: str) -> None:
        # the conditional write lost a race; re-run the checks for an accurate error
        current = await self.repository.get_division_tree(division_id)
        if not current:
            raise NotFound("Division not found")
        if current.is_locked:
            raise AlreadyLocked("Division is already locked")
        check = can_lock_division(current)
        if not check.can_lock:
            raise StructuralInvalid(check.reason or "Division cannot be locked")
        raise AlreadyInState("Division lock state changed concurrently")

    async def _raise_tournament_lock_conflict(self, tournament_id: str) -> None:
        current = await self.repository.get_tournament(tournament_id)
        if not current:
            raise NotFound("Tournament not found")
        if current.is_locked:
            raise AlreadyLocked("Tournament is already locked")
        check = can_lock_tournament(await self.repository.list_divisions(tournament_id))
        if not check.can_lock:
            raise StructuralInvalid(check.reason or "Tournament cannot be locked")
        raise AlreadyInState("Tournament lock state changed concurrently")

    async def _division_tree_or_404(self, division_id: str) -> DivisionTree:
        tree = await self.repository.get_division_tree(division_id)
        if not tree:
            raise NotFound("Division not found")
        return tree

    async def _tournament_tree_or_404(self, tournament_id: str) -> TournamentTree:
        tree = await self.repository.get_tournament_tree(tournament_id)
        if not tree:
            raise NotFound("Tournament not found")
        return tree


def _now() -> datetime:
    return datetime.now(timezone.utc)
