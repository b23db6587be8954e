from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.lock import DivisionLockStatus
from ..schemas.tournament import DivisionTree, GroupCreate
from ..services.lock_service import LockService
from ..services.permission_service import is_global_admin
from ..services.tournament_service import TournamentService

router = APIRouter(prefix="/divisions", tags=["divisions"])


@router.post("/{division_id}/lock", response_model=DivisionTree)
async def lock_division(
    division_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = LockService(session)
    return await service.lock_division(division_id=division_id, acting_user_id=current_user.id)


@router.post("/{division_id}/unlock", response_model=DivisionTree)
async def unlock_division(
    division_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = LockService(session)
    return await service.unlock_division(
        division_id=division_id,
        acting_user_id=current_user.id,
        acting_user_is_admin=is_global_admin(current_user.role),
    )


@router.get("/{division_id}/lock-status", response_model=DivisionLockStatus)
async def division_lock_status(
    division_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.division_lock_status(division_id=division_id, user=current_user)


@router.post("/{division_id}/groups", response_model=DivisionTree, status_code=status.HTTP_201_CREATED)
async def add_group(
    division_id: str,
    payload: GroupCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.add_group(division_id=division_id, payload=payload, user=current_user)
