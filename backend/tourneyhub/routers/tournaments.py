from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.capability import CapabilitySet
from ..schemas.lock import TournamentLockStatus
from ..schemas.tournament import (
    DivisionCreate,
    DivisionTree,
    PublicationUpdate,
    TournamentCreate,
    TournamentPublic,
    TournamentTree,
)
from ..services.lock_service import LockService
from ..services.permission_service import PermissionManager, is_global_admin
from ..services.tournament_service import TournamentService

router = APIRouter(prefix="/tournaments", tags=["tournaments"])


@router.post("", response_model=TournamentPublic, status_code=status.HTTP_201_CREATED)
async def create_tournament(
    payload: TournamentCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    tournament = await service.create(creator=current_user, payload=payload)
    return TournamentPublic.model_validate(tournament)


@router.get("/{tournament_id}", response_model=TournamentTree)
async def get_tournament(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.get_tree(tournament_id=tournament_id, user=current_user)


@router.patch("/{tournament_id}/publication", response_model=TournamentPublic)
async def update_publication(
    tournament_id: str,
    payload: PublicationUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    tournament = await service.update_publication(tournament_id=tournament_id, payload=payload, user=current_user)
    return TournamentPublic.model_validate(tournament)


@router.post("/{tournament_id}/lock", response_model=TournamentTree)
async def lock_tournament(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = LockService(session)
    return await service.lock_tournament(tournament_id=tournament_id, acting_user_id=current_user.id)


@router.post("/{tournament_id}/unlock", response_model=TournamentTree)
async def unlock_tournament(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = LockService(session)
    return await service.unlock_tournament(
        tournament_id=tournament_id,
        acting_user_id=current_user.id,
        acting_user_is_admin=is_global_admin(current_user.role),
    )


@router.get("/{tournament_id}/lock-status", response_model=TournamentLockStatus)
async def tournament_lock_status(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.lock_status(tournament_id=tournament_id, user=current_user)


@router.get("/{tournament_id}/permissions", response_model=CapabilitySet)
async def tournament_permissions(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    permissions = PermissionManager(session)
    return await permissions.resolve(current_user.id, tournament_id)


@router.post("/{tournament_id}/divisions", response_model=DivisionTree, status_code=status.HTTP_201_CREATED)
async def add_division(
    tournament_id: str,
    payload: DivisionCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.add_division(tournament_id=tournament_id, payload=payload, user=current_user)
