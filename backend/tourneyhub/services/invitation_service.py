import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..config import get_settings
from ..enums import InvitationStatus
from ..errors import Forbidden, InvitationError, NotFound
from ..models import Tournament, User, UserInvitation
from ..schemas.invitation import InvitationCreate, InvitationPublic
from .permission_service import PermissionManager
from .repository import TournamentRepository

settings = get_settings()
logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def effective_status(invitation: UserInvitation, now: Optional[datetime] = None) -> InvitationStatus:
    """A pending invitation past its expiry reads as EXPIRED whether or not that was persisted."""
    current = now or datetime.now(timezone.utc)
    if invitation.status == InvitationStatus.PENDING and _as_utc(invitation.expires) <= current:
        return InvitationStatus.EXPIRED
    return invitation.status


def invitation_url(token: str) -> str:
    return f"{settings.invitation_base_url}?token={token}"


def to_public(invitation: UserInvitation) -> InvitationPublic:
    payload = invitation.model_dump()
    payload["status"] = effective_status(invitation)
    payload["invitation_url"] = invitation_url(invitation.token)
    return InvitationPublic.model_validate(payload)


@dataclass
class AcceptedInvitation:
    invitation: UserInvitation
    tournament: Optional[Tournament]
    already_accepted: bool


class InvitationService:
    def __init__(
        self,
        session: AsyncSession,
        repository: Optional[TournamentRepository] = None,
        permissions: Optional[PermissionManager] = None,
    ) -> None:
        self.session = session
        self.repository = repository or TournamentRepository(session)
        self.permissions = permissions or PermissionManager(session, self.repository)

    async def create(self, *, tournament_id: str, inviter: User, payload: InvitationCreate) -> UserInvitation:
        tournament = await self.repository.get_tournament(tournament_id)
        if not tournament:
            raise NotFound("Tournament not found")
        if not await self.permissions.can_configure(inviter.id, tournament_id):
            raise Forbidden("Insufficient permissions to invite users")

        email = payload.email.lower()
        pending_stmt = select(UserInvitation).where(
            UserInvitation.email == email,
            UserInvitation.tournament_id == tournament_id,
            UserInvitation.status == InvitationStatus.PENDING,
        )
        pending = (await self.session.execute(pending_stmt)).scalars().all()
        if any(effective_status(invitation) == InvitationStatus.PENDING for invitation in pending):
            raise InvitationError("Invitation already sent to this email")

        existing_user = await self.repository.get_user_by_email(email)
        invitation = UserInvitation(
            email=email,
            tournament_id=tournament_id,
            can_configure=payload.can_configure,
            can_manage_scores=payload.can_manage_scores,
            is_referee=payload.is_referee,
            token=secrets.token_hex(32),
            expires=datetime.now(timezone.utc) + timedelta(days=settings.invitation_expire_days),
            inviter_id=inviter.id,
            invited_user_id=existing_user.id if existing_user else None,
        )
        self.session.add(invitation)
        await self.session.commit()
        await self.session.refresh(invitation)
        # delivery happens elsewhere; the link is returned to the inviter
        logger.info(
            "Invitation %s created for %s on tournament %s by %s",
            invitation.id,
            email,
            tournament_id,
            inviter.id,
        )
        return invitation

    async def list_for_tournament(self, *, tournament_id: str, user: User) -> Sequence[UserInvitation]:
        if not await self.permissions.can_configure(user.id, tournament_id):
            raise Forbidden("Insufficient permissions")
        statement = (
            select(UserInvitation)
            .where(UserInvitation.tournament_id == tournament_id)
            .order_by(UserInvitation.created_at.desc())
        )
        return (await self.session.execute(statement)).scalars().all()

    async def get_by_token(self, token: str) -> UserInvitation:
        statement = (
            select(UserInvitation)
            .where(UserInvitation.token == token)
            .execution_options(populate_existing=True)
        )
        invitation = (await self.session.execute(statement)).scalar_one_or_none()
        if not invitation:
            raise NotFound("Invalid invitation token")
        return invitation

    async def accept(self, *, token: str, user: User) -> AcceptedInvitation:
        invitation = await self.get_by_token(token)
        if invitation.email.lower() != user.email.lower():
            raise Forbidden("This invitation was sent to a different email address")

        if self._accepted_by(invitation, user):
            return await self._accepted_result(invitation, already_accepted=True)

        status = effective_status(invitation)
        if status == InvitationStatus.EXPIRED:
            await self._mark_expired(invitation)
            raise InvitationError("Invitation has expired")
        if status != InvitationStatus.PENDING:
            raise InvitationError("Invitation has already been used or expired")

        claim = (
            update(UserInvitation)
            .where(UserInvitation.id == invitation.id, UserInvitation.status == InvitationStatus.PENDING)
            .values(
                status=InvitationStatus.ACCEPTED,
                accepted_at=datetime.now(timezone.utc),
                invited_user_id=user.id,
            )
            .execution_options(synchronize_session=False)
        )
        claimed = (await self.session.execute(claim)).rowcount == 1
        if not claimed:
            await self.session.rollback()
            current = await self.get_by_token(token)
            if self._accepted_by(current, user):
                return await self._accepted_result(current, already_accepted=True)
            raise InvitationError("Invitation has already been used or expired")

        if invitation.tournament_id:
            await self.repository.upsert_assignment(
                user_id=user.id,
                tournament_id=invitation.tournament_id,
                can_configure=invitation.can_configure,
                can_manage_scores=invitation.can_manage_scores,
                is_referee=invitation.is_referee,
                assigned_by=invitation.inviter_id,
                merge=True,
            )
        await self.session.commit()
        logger.info("Invitation %s accepted by %s", invitation.id, user.id)

        accepted = await self.get_by_token(token)
        return await self._accepted_result(accepted, already_accepted=False)

    async def revoke(self, *, tournament_id: str, invitation_id: str, user: User) -> UserInvitation:
        if not await self.permissions.can_configure(user.id, tournament_id):
            raise Forbidden("Insufficient permissions")
        statement = select(UserInvitation).where(
            UserInvitation.id == invitation_id,
            UserInvitation.tournament_id == tournament_id,
        )
        invitation = (await self.session.execute(statement)).scalar_one_or_none()
        if not invitation:
            raise NotFound("Invitation not found")
        if effective_status(invitation) != InvitationStatus.PENDING:
            raise InvitationError("Only pending invitations can be revoked")

        invitation.status = InvitationStatus.REVOKED
        self.session.add(invitation)
        await self.session.commit()
        await self.session.refresh(invitation)
        logger.info("Invitation %s revoked by %s", invitation.id, user.id)
        return invitation

    async def resend(self, *, tournament_id: str, invitation_id: str, user: User) -> UserInvitation:
        if not await self.permissions.can_configure(user.id, tournament_id):
            raise Forbidden("Insufficient permissions to resend invitations")
        statement = (
            select(UserInvitation)
            .where(UserInvitation.id == invitation_id)
            .execution_options(populate_existing=True)
        )
        invitation = (await self.session.execute(statement)).scalar_one_or_none()
        if not invitation:
            raise NotFound("Invitation not found")
        if invitation.tournament_id != tournament_id:
            raise InvitationError("Invitation does not belong to this tournament")
        # a pending invitation past its expiry is re-armed here, so only the stored status counts
        if invitation.status != InvitationStatus.PENDING:
            raise InvitationError("Can only resend pending invitations")

        invitation.expires = datetime.now(timezone.utc) + timedelta(days=settings.invitation_expire_days)
        self.session.add(invitation)
        await self.session.commit()
        await self.session.refresh(invitation)
        logger.info("Invitation %s resent by %s, now expires %s", invitation.id, user.id, invitation.expires)
        return invitation

    @staticmethod
    def _accepted_by(invitation: UserInvitation, user: User) -> bool:
        return invitation.status == InvitationStatus.ACCEPTED and invitation.invited_user_id == user.id

    async def _mark_expired(self, invitation: UserInvitation) -> None:
        statement = (
            update(UserInvitation)
            .where(UserInvitation.id == invitation.id, UserInvitation.status == InvitationStatus.PENDING)
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(statement)
        await self.session.commit()
        logger.info("Invitation %s expired", invitation.id)

    async def _accepted_result(self, invitation: UserInvitation, *, already_accepted: bool) -> AcceptedInvitation:
        tournament = None
        if invitation.tournament_id:
            tournament = await self.repository.get_tournament(invitation.tournament_id)
        return AcceptedInvitation(invitation=invitation, tournament=tournament, already_accepted=already_accepted)
