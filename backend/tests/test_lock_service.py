"""
Lock transitions against a real database.

Covers the structural checks, the locker-or-admin unlock rule, the
independence of the two lock levels and the conditional write that makes
check-then-lock atomic.
"""
from datetime import datetime, timezone

import pytest
from conftest import make_division, make_user
from sqlmodel import select

from tourneyhub.enums import LockTarget
from tourneyhub.errors import AlreadyLocked, Forbidden, NotFound, NotLocked, StructuralInvalid
from tourneyhub.models import Division, Group, Team, TournamentAssignment
from tourneyhub.services.lock_service import (
    LockService,
    division_structure_guards,
    tournament_structure_guards,
)
from tourneyhub.services.repository import LockState, TournamentRepository
from tourneyhub.services.tournament_service import TournamentService


async def _stored_division(session_factory, division_id):
    async with session_factory() as session:
        return (await session.execute(select(Division).where(Division.id == division_id))).scalar_one()


class TestDivisionLock:
    async def test_lock_complete_division(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions", "Tigers"]), ("B", ["Bears"])])

        tree = await LockService(db).lock_division(division_id=division.id, acting_user_id=organizer.id)

        assert tree.is_locked is True
        assert tree.locked_by == organizer.id
        assert tree.locked_at is not None
        assert [group.name for group in tree.groups] == ["A", "B"]

    async def test_empty_group_blocks_lock(self, db, organizer, tournament, session_factory):
        division = await make_division(db, tournament, "U12", [("A", ["Lions", "Tigers", "Bears"]), ("Empty", [])])

        with pytest.raises(StructuralInvalid) as exc_info:
            await LockService(db).lock_division(division_id=division.id, acting_user_id=organizer.id)

        assert "Empty" in exc_info.value.reason
        stored = await _stored_division(session_factory, division.id)
        assert stored.is_locked is False

    async def test_division_without_groups_blocks_lock(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12")
        with pytest.raises(StructuralInvalid) as exc_info:
            await LockService(db).lock_division(division_id=division.id, acting_user_id=organizer.id)
        assert exc_info.value.reason == "Division must have at least one group before locking"

    async def test_double_lock(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        service = LockService(db)
        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)

        with pytest.raises(AlreadyLocked) as exc_info:
            await service.lock_division(division_id=division.id, acting_user_id=organizer.id)
        assert exc_info.value.message == "Division is already locked"

    async def test_lock_requires_configure(self, db, outsider, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        with pytest.raises(Forbidden):
            await LockService(db).lock_division(division_id=division.id, acting_user_id=outsider.id)

    async def test_missing_division(self, db, organizer):
        with pytest.raises(NotFound):
            await LockService(db).lock_division(division_id="missing", acting_user_id=organizer.id)


class TestDivisionUnlock:
    async def test_locker_unlocks(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        service = LockService(db)
        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)

        tree = await service.unlock_division(
            division_id=division.id,
            acting_user_id=organizer.id,
            acting_user_is_admin=False,
        )
        assert tree.is_locked is False
        assert tree.locked_at is None
        assert tree.locked_by is None

    async def test_unlock_of_unlocked_division_changes_nothing(self, db, organizer, tournament, session_factory):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])

        with pytest.raises(NotLocked) as exc_info:
            await LockService(db).unlock_division(
                division_id=division.id,
                acting_user_id=organizer.id,
                acting_user_is_admin=False,
            )
        assert exc_info.value.message == "Division is not locked"
        stored = await _stored_division(session_factory, division.id)
        assert stored.is_locked is False
        assert stored.locked_by is None

    async def test_other_configurer_cannot_unlock(self, db, organizer, tournament):
        colleague = await make_user(db, "colleague@example.com")
        db.add(TournamentAssignment(user_id=colleague.id, tournament_id=tournament.id, can_configure=True))
        await db.commit()
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        service = LockService(db)
        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)

        with pytest.raises(Forbidden) as exc_info:
            await service.unlock_division(
                division_id=division.id,
                acting_user_id=colleague.id,
                acting_user_is_admin=False,
            )
        assert exc_info.value.message == "You do not have permission to unlock this division"

    async def test_admin_unlocks_someone_elses_lock(self, db, organizer, admin, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        service = LockService(db)
        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)

        tree = await service.unlock_division(division_id=division.id, acting_user_id=admin.id, acting_user_is_admin=True)
        assert tree.is_locked is False


class TestTournamentLock:
    async def test_unlocked_division_blocks_tournament_lock(self, db, organizer, tournament):
        first = await make_division(db, tournament, "D1", [("A", ["Lions"])], position=0)
        await make_division(db, tournament, "D2", [("A", ["Bears"])], position=1)
        service = LockService(db)
        await service.lock_division(division_id=first.id, acting_user_id=organizer.id)

        with pytest.raises(StructuralInvalid) as exc_info:
            await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)
        assert exc_info.value.message == "Unlocked divisions: D2"

    async def test_lock_when_every_division_locked(self, db, organizer, tournament):
        first = await make_division(db, tournament, "D1", [("A", ["Lions"])], position=0)
        second = await make_division(db, tournament, "D2", [("A", ["Bears"])], position=1)
        service = LockService(db)
        for division in (first, second):
            await service.lock_division(division_id=division.id, acting_user_id=organizer.id)

        tree = await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)

        assert tree.is_locked is True
        assert tree.locked_by == organizer.id
        assert [division.name for division in tree.divisions] == ["D1", "D2"]
        assert all(division.is_locked for division in tree.divisions)

    async def test_double_tournament_lock(self, db, organizer, tournament):
        service = LockService(db)
        await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)
        with pytest.raises(AlreadyLocked) as exc_info:
            await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)
        assert exc_info.value.message == "Tournament is already locked"

    async def test_unlocking_tournament_leaves_divisions_locked(self, db, organizer, tournament):
        division = await make_division(db, tournament, "D1", [("A", ["Lions"])])
        service = LockService(db)
        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)
        await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)

        tree = await service.unlock_tournament(
            tournament_id=tournament.id,
            acting_user_id=organizer.id,
            acting_user_is_admin=False,
        )
        assert tree.is_locked is False
        assert tree.divisions[0].is_locked is True

    async def test_unlock_messages(self, db, organizer, outsider, tournament):
        service = LockService(db)
        with pytest.raises(NotLocked) as exc_info:
            await service.unlock_tournament(
                tournament_id=tournament.id,
                acting_user_id=organizer.id,
                acting_user_is_admin=False,
            )
        assert exc_info.value.message == "Tournament is not locked"

        await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)
        with pytest.raises(Forbidden) as exc_info:
            await service.unlock_tournament(
                tournament_id=tournament.id,
                acting_user_id=outsider.id,
                acting_user_is_admin=False,
            )
        assert exc_info.value.message == "You do not have permission to unlock this tournament"


class TestStructuralWriteGate:
    async def test_locked_division_rejects_structural_writes(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        service = LockService(db)
        assert (await service.ensure_division_unlocked(division.id)).id == division.id

        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)
        with pytest.raises(AlreadyLocked):
            await service.ensure_division_unlocked(division.id)


class TestConditionalWrite:
    async def test_stale_expectation_does_not_write(self, db, organizer, tournament, session_factory):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        await LockService(db).lock_division(division_id=division.id, acting_user_id=organizer.id)

        async with session_factory() as other:
            changed = await TournamentRepository(other).set_lock_state(
                LockTarget.DIVISION,
                division.id,
                LockState(is_locked=True, locked_at=datetime.now(timezone.utc), locked_by="someone-else"),
                expected_locked=False,
            )
            await other.commit()

        assert changed is False
        stored = await _stored_division(session_factory, division.id)
        assert stored.locked_by == organizer.id

    async def test_structure_guard_rejects_group_added_after_check(self, db, organizer, tournament, session_factory):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        # a concurrent writer adds an empty group after the snapshot was validated
        db.add(Group(division_id=division.id, name="Late"))
        await db.commit()

        async with session_factory() as other:
            changed = await TournamentRepository(other).set_lock_state(
                LockTarget.DIVISION,
                division.id,
                LockState(is_locked=True, locked_at=datetime.now(timezone.utc), locked_by=organizer.id),
                expected_locked=False,
                guards=division_structure_guards(division.id),
            )
            await other.commit()

        assert changed is False
        assert (await _stored_division(session_factory, division.id)).is_locked is False

    async def test_tournament_guard_rejects_unlocked_division(self, db, organizer, tournament):
        await make_division(db, tournament, "D1", [("A", ["Lions"])])
        changed = await TournamentRepository(db).set_lock_state(
            LockTarget.TOURNAMENT,
            tournament.id,
            LockState(is_locked=True, locked_at=datetime.now(timezone.utc), locked_by=organizer.id),
            expected_locked=False,
            guards=tournament_structure_guards(tournament.id),
        )
        await db.rollback()
        assert changed is False


class TestRowLocksBeforeGuardedWrite:
    """The guarded UPDATE must run after the division rows are held."""

    @staticmethod
    def _record(service, calls):
        hold = service._hold_divisions
        write = service.repository.set_lock_state

        async def recording_hold(*conditions):
            calls.append("hold")
            await hold(*conditions)

        async def recording_write(*args, **kwargs):
            calls.append("write")
            return await write(*args, **kwargs)

        service._hold_divisions = recording_hold
        service.repository.set_lock_state = recording_write

    async def test_division_lock_holds_row_first(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        service = LockService(db)
        calls = []
        self._record(service, calls)

        await service.lock_division(division_id=division.id, acting_user_id=organizer.id)
        assert calls == ["hold", "write"]

    async def test_tournament_lock_holds_rows_first(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        await LockService(db).lock_division(division_id=division.id, acting_user_id=organizer.id)
        service = LockService(db)
        calls = []
        self._record(service, calls)

        await service.lock_tournament(tournament_id=tournament.id, acting_user_id=organizer.id)
        assert calls == ["hold", "write"]

    async def test_team_removed_before_lock_is_seen(self, db, organizer, tournament):
        division = await make_division(db, tournament, "U12", [("A", ["Lions"])])
        team = (await db.execute(select(Team).where(Team.name == "Lions"))).scalar_one()
        await TournamentService(db).remove_team(group_id=team.group_id, team_id=team.id, user=organizer)

        with pytest.raises(StructuralInvalid) as exc_info:
            await LockService(db).lock_division(division_id=division.id, acting_user_id=organizer.id)
        assert exc_info.value.reason == "Groups without teams: A"
