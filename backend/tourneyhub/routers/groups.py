from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.tournament import DivisionTree, TeamCreate
from ..services.tournament_service import TournamentService

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/{group_id}/teams", response_model=DivisionTree, status_code=status.HTTP_201_CREATED)
async def add_team(
    group_id: str,
    payload: TeamCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.add_team(group_id=group_id, payload=payload, user=current_user)


@router.delete("/{group_id}/teams/{team_id}", response_model=DivisionTree)
async def remove_team(
    group_id: str,
    team_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = TournamentService(session)
    return await service.remove_team(group_id=group_id, team_id=team_id, user=current_user)
