from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.invitation import InvitationAccept, InvitationAcceptResponse, InvitationCreate, InvitationPublic
from ..services.invitation_service import InvitationService, to_public

router = APIRouter(tags=["invitations"])


@router.post(
    "/tournaments/{tournament_id}/invitations",
    response_model=InvitationPublic,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    tournament_id: str,
    payload: InvitationCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = InvitationService(session)
    invitation = await service.create(tournament_id=tournament_id, inviter=current_user, payload=payload)
    return to_public(invitation)


@router.get("/tournaments/{tournament_id}/invitations", response_model=list[InvitationPublic])
async def list_invitations(
    tournament_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = InvitationService(session)
    invitations = await service.list_for_tournament(tournament_id=tournament_id, user=current_user)
    return [to_public(invitation) for invitation in invitations]


@router.post("/tournaments/{tournament_id}/invitations/{invitation_id}/revoke", response_model=InvitationPublic)
async def revoke_invitation(
    tournament_id: str,
    invitation_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = InvitationService(session)
    invitation = await service.revoke(tournament_id=tournament_id, invitation_id=invitation_id, user=current_user)
    return to_public(invitation)


@router.post("/tournaments/{tournament_id}/invitations/{invitation_id}/resend", response_model=InvitationPublic)
async def resend_invitation(
    tournament_id: str,
    invitation_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = InvitationService(session)
    invitation = await service.resend(tournament_id=tournament_id, invitation_id=invitation_id, user=current_user)
    return to_public(invitation)


@router.post("/invitations/accept", response_model=InvitationAcceptResponse)
async def accept_invitation(
    payload: InvitationAccept,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = InvitationService(session)
    result = await service.accept(token=payload.token, user=current_user)
    message = "Invitation already accepted" if result.already_accepted else "Invitation accepted successfully"
    return InvitationAcceptResponse(
        message=message,
        tournament_id=result.tournament.id if result.tournament else None,
        tournament_name=result.tournament.name if result.tournament else None,
    )


@router.get("/invitations/{token}", response_model=InvitationPublic)
async def get_invitation(token: str, session: AsyncSession = Depends(get_session)):
    service = InvitationService(session)
    invitation = await service.get_by_token(token)
    return to_public(invitation)
