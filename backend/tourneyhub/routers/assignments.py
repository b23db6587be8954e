from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.assignment import AssignmentPublic, AssignmentUpdate
from ..services.assignment_service import AssignmentService

router = APIRouter(prefix="/tournaments/{tournament_id}/assignments", tags=["assignments"])


@router.get("", response_model=list[AssignmentPublic])
async def list_assignments(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = AssignmentService(session)
    assignments = await service.list_for_tournament(tournament_id=tournament_id, user=current_user)
    return [AssignmentPublic.model_validate(assignment) for assignment in assignments]


@router.put("/{user_id}", response_model=AssignmentPublic)
async def set_assignment(
    tournament_id: str,
    user_id: str,
    payload: AssignmentUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = AssignmentService(session)
    assignment = await service.set_assignment(
        tournament_id=tournament_id,
        target_user_id=user_id,
        payload=payload,
        user=current_user,
    )
    return AssignmentPublic.model_validate(assignment)


@router.delete("/{user_id}", response_model=AssignmentPublic)
async def deactivate_assignment(
    tournament_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = AssignmentService(session)
    assignment = await service.deactivate(tournament_id=tournament_id, target_user_id=user_id, user=current_user)
    return AssignmentPublic.model_validate(assignment)
