"""
Structural rules deciding whether a division or tournament may be locked.

Everything here is pure: callers pass an already-fetched snapshot (any objects
exposing ``name``/``groups``/``teams``/``is_locked`` attributes, e.g. the
``DivisionTree`` schema) and nothing touches storage.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from ..schemas.lock import DivisionLockStatus, TournamentLockStatus

NO_GROUPS_REASON = "Division must have at least one group before locking"


@dataclass(frozen=True)
class LockCheck:
    can_lock: bool
    reason: Optional[str] = None


def can_lock_division(division: Any) -> LockCheck:
    groups = list(division.groups)
    if not groups:
        return LockCheck(can_lock=False, reason=NO_GROUPS_REASON)

    empty_groups = [group.name for group in groups if not group.teams]
    if empty_groups:
        return LockCheck(can_lock=False, reason=f"Groups without teams: {', '.join(empty_groups)}")

    return LockCheck(can_lock=True)


def can_lock_tournament(divisions: Sequence[Any]) -> LockCheck:
    unlocked = [division.name for division in divisions if not division.is_locked]
    if unlocked:
        return LockCheck(can_lock=False, reason=f"Unlocked divisions: {', '.join(unlocked)}")
    return LockCheck(can_lock=True)


def can_unlock(
    *,
    is_locked: bool,
    locked_by: Optional[str],
    acting_user_id: Optional[str],
    acting_user_is_admin: bool,
) -> bool:
    if not is_locked:
        return False
    return acting_user_is_admin or (acting_user_id is not None and acting_user_id == locked_by)


def division_lock_status(
    division: Any,
    *,
    acting_user_id: Optional[str] = None,
    acting_user_is_admin: bool = False,
) -> DivisionLockStatus:
    check = can_lock_division(division)
    locked_at: Optional[datetime] = getattr(division, "locked_at", None)
    locked_by: Optional[str] = getattr(division, "locked_by", None)
    return DivisionLockStatus(
        division_id=division.id,
        division_name=division.name,
        is_locked=division.is_locked,
        locked_at=locked_at,
        locked_by=locked_by,
        groups_count=len(division.groups),
        teams_count=sum(len(group.teams) for group in division.groups),
        can_lock=check.can_lock and not division.is_locked,
        can_unlock=can_unlock(
            is_locked=division.is_locked,
            locked_by=locked_by,
            acting_user_id=acting_user_id,
            acting_user_is_admin=acting_user_is_admin,
        ),
        reason=check.reason,
    )


def tournament_lock_status(
    tournament: Any,
    *,
    acting_user_id: Optional[str] = None,
    acting_user_is_admin: bool = False,
) -> TournamentLockStatus:
    divisions = [
        division_lock_status(
            division,
            acting_user_id=acting_user_id,
            acting_user_is_admin=acting_user_is_admin,
        )
        for division in tournament.divisions
    ]
    check = can_lock_tournament(tournament.divisions)
    return TournamentLockStatus(
        tournament_id=tournament.id,
        is_locked=tournament.is_locked,
        locked_at=tournament.locked_at,
        locked_by=tournament.locked_by,
        divisions=divisions,
        can_lock=check.can_lock and not tournament.is_locked,
        can_unlock=can_unlock(
            is_locked=tournament.is_locked,
            locked_by=tournament.locked_by,
            acting_user_id=acting_user_id,
            acting_user_is_admin=acting_user_is_admin,
        ),
        reason=check.reason,
    )
