from datetime import datetime, timedelta, timezone

import pytest
from conftest import make_tournament, make_user
from sqlmodel import select

from tourneyhub.enums import InvitationStatus
from tourneyhub.errors import Forbidden, InvitationError, NotFound
from tourneyhub.models import TournamentAssignment, UserInvitation
from tourneyhub.schemas.invitation import InvitationCreate
from tourneyhub.services.invitation_service import InvitationService, effective_status
from tourneyhub.services.permission_service import PermissionManager


async def _invite(db, tournament, inviter, email="ref@example.com", **flags):
    payload = InvitationCreate(email=email, **flags)
    return await InvitationService(db).create(tournament_id=tournament.id, inviter=inviter, payload=payload)


class TestCreate:
    async def test_creates_pending_invitation(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer, email="Ref@Example.com", is_referee=True)
        assert invitation.email == "ref@example.com"
        assert invitation.status == InvitationStatus.PENDING
        assert len(invitation.token) == 64
        assert invitation.is_referee is True

    async def test_requires_configure(self, db, outsider, tournament):
        with pytest.raises(Forbidden):
            await _invite(db, tournament, outsider)

    async def test_unknown_tournament(self, db, organizer):
        with pytest.raises(NotFound):
            await InvitationService(db).create(
                tournament_id="missing",
                inviter=organizer,
                payload=InvitationCreate(email="ref@example.com"),
            )

    async def test_duplicate_pending_rejected(self, db, organizer, tournament):
        await _invite(db, tournament, organizer)
        with pytest.raises(InvitationError) as exc_info:
            await _invite(db, tournament, organizer)
        assert exc_info.value.message == "Invitation already sent to this email"


class TestAccept:
    async def test_accept_grants_assignment(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer, can_manage_scores=True)
        invitee = await make_user(db, "ref@example.com")

        result = await InvitationService(db).accept(token=invitation.token, user=invitee)

        assert result.already_accepted is False
        assert result.tournament.id == tournament.id
        assert result.invitation.status == InvitationStatus.ACCEPTED
        capabilities = await PermissionManager(db).resolve(invitee.id, tournament.id)
        assert capabilities.can_manage_scores is True
        assert capabilities.can_configure is False

    async def test_accept_twice_is_idempotent(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer, is_referee=True)
        invitee = await make_user(db, "ref@example.com")
        service = InvitationService(db)
        await service.accept(token=invitation.token, user=invitee)

        again = await service.accept(token=invitation.token, user=invitee)

        assert again.already_accepted is True
        rows = (
            await db.execute(select(TournamentAssignment).where(TournamentAssignment.user_id == invitee.id))
        ).scalars().all()
        assert len(rows) == 1

    async def test_accept_merges_into_existing_assignment(self, db, organizer, tournament):
        invitee = await make_user(db, "ref@example.com")
        db.add(TournamentAssignment(user_id=invitee.id, tournament_id=tournament.id, is_referee=True))
        await db.commit()
        invitation = await _invite(db, tournament, organizer, can_manage_scores=True)

        await InvitationService(db).accept(token=invitation.token, user=invitee)

        capabilities = await PermissionManager(db).resolve(invitee.id, tournament.id)
        assert capabilities.is_referee is True
        assert capabilities.can_manage_scores is True

    async def test_email_mismatch(self, db, organizer, outsider, tournament):
        invitation = await _invite(db, tournament, organizer)
        with pytest.raises(Forbidden):
            await InvitationService(db).accept(token=invitation.token, user=outsider)

    async def test_expired_invitation(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer)
        invitation.expires = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.add(invitation)
        await db.commit()
        invitee = await make_user(db, "ref@example.com")

        with pytest.raises(InvitationError) as exc_info:
            await InvitationService(db).accept(token=invitation.token, user=invitee)

        assert exc_info.value.message == "Invitation has expired"
        stored = await InvitationService(db).get_by_token(invitation.token)
        assert stored.status == InvitationStatus.EXPIRED
        assert (await PermissionManager(db).resolve(invitee.id, tournament.id)).has_any is False

    async def test_unknown_token(self, db, outsider):
        with pytest.raises(NotFound):
            await InvitationService(db).accept(token="nope", user=outsider)

    async def test_revoked_invitation_cannot_be_accepted(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer)
        service = InvitationService(db)
        await service.revoke(tournament_id=tournament.id, invitation_id=invitation.id, user=organizer)
        invitee = await make_user(db, "ref@example.com")

        with pytest.raises(InvitationError):
            await service.accept(token=invitation.token, user=invitee)


class TestResend:
    async def test_resend_rearms_expired_pending_invitation(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer)
        invitation.expires = datetime.now(timezone.utc) - timedelta(days=1)
        db.add(invitation)
        await db.commit()
        service = InvitationService(db)

        resent = await service.resend(tournament_id=tournament.id, invitation_id=invitation.id, user=organizer)

        assert resent.status == InvitationStatus.PENDING
        assert effective_status(resent) == InvitationStatus.PENDING
        assert resent.expires.replace(tzinfo=timezone.utc) > datetime.now(timezone.utc) + timedelta(days=6)

        invitee = await make_user(db, "ref@example.com")
        result = await service.accept(token=invitation.token, user=invitee)
        assert result.invitation.status == InvitationStatus.ACCEPTED

    async def test_resend_requires_configure(self, db, organizer, outsider, tournament):
        invitation = await _invite(db, tournament, organizer)
        with pytest.raises(Forbidden):
            await InvitationService(db).resend(tournament_id=tournament.id, invitation_id=invitation.id, user=outsider)

    async def test_resend_unknown_invitation(self, db, organizer, tournament):
        with pytest.raises(NotFound):
            await InvitationService(db).resend(tournament_id=tournament.id, invitation_id="missing", user=organizer)

    async def test_resend_from_another_tournament(self, db, organizer, admin, tournament):
        other = await make_tournament(db, admin, name="Autumn Cup")
        invitation = await _invite(db, other, admin)
        with pytest.raises(InvitationError) as exc_info:
            await InvitationService(db).resend(tournament_id=tournament.id, invitation_id=invitation.id, user=organizer)
        assert exc_info.value.message == "Invitation does not belong to this tournament"

    async def test_resend_only_pending(self, db, organizer, tournament):
        invitation = await _invite(db, tournament, organizer)
        service = InvitationService(db)
        await service.revoke(tournament_id=tournament.id, invitation_id=invitation.id, user=organizer)
        with pytest.raises(InvitationError) as exc_info:
            await service.resend(tournament_id=tournament.id, invitation_id=invitation.id, user=organizer)
        assert exc_info.value.message == "Can only resend pending invitations"

def test_effective_status_treats_naive_expiry_as_utc():
    invitation = UserInvitation(
        email="ref@example.com",
        token="t",
        inviter_id="u1",
        expires=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=5),
    )
    assert effective_status(invitation) == InvitationStatus.EXPIRED
    invitation.status = InvitationStatus.REVOKED
    assert effective_status(invitation) == InvitationStatus.REVOKED
