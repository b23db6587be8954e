from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..access.public_filter import filter_divisions, filter_groups, filter_teams, filter_venues
from ..database import get_session
from ..errors import NotFound
from ..schemas.public import PublicDivision, PublicGroup, PublicTeam, PublicTournament, PublicVenue, Visibility
from ..services.repository import TournamentRepository
from ..services.visibility_service import VisibilityResolver

router = APIRouter(prefix="/tournaments", tags=["public"])


async def _visibility_or_404(repository: TournamentRepository, tournament_id: str) -> Visibility:
    # hidden and missing tournaments share one response
    visibility = await VisibilityResolver(repository.session, repository).resolve(tournament_id)
    if not visibility.can_view_tournament:
        raise NotFound("Tournament not found or access denied")
    return visibility


@router.get("/{tournament_id}/public", response_model=PublicTournament)
async def public_tournament(tournament_id: str, session: AsyncSession = Depends(get_session)):
    repository = TournamentRepository(session)
    visibility = await _visibility_or_404(repository, tournament_id)
    tournament = await repository.get_tournament(tournament_id)
    return PublicTournament(id=tournament.id, name=tournament.name, visibility=visibility)


@router.get("/{tournament_id}/public/teams", response_model=list[PublicTeam])
async def public_teams(tournament_id: str, session: AsyncSession = Depends(get_session)):
    repository = TournamentRepository(session)
    visibility = await _visibility_or_404(repository, tournament_id)
    if not visibility.can_view_teams:
        return []
    return filter_teams(await repository.list_public_teams(tournament_id), visibility)


@router.get("/{tournament_id}/public/groups", response_model=list[PublicGroup])
async def public_groups(tournament_id: str, session: AsyncSession = Depends(get_session)):
    repository = TournamentRepository(session)
    visibility = await _visibility_or_404(repository, tournament_id)
    return filter_groups(await repository.list_public_groups(tournament_id), visibility)


@router.get("/{tournament_id}/public/divisions", response_model=list[PublicDivision])
async def public_divisions(tournament_id: str, session: AsyncSession = Depends(get_session)):
    repository = TournamentRepository(session)
    visibility = await _visibility_or_404(repository, tournament_id)
    return filter_divisions(await repository.list_public_divisions(tournament_id), visibility)


@router.get("/{tournament_id}/public/venues", response_model=list[PublicVenue])
async def public_venues(tournament_id: str, session: AsyncSession = Depends(get_session)):
    repository = TournamentRepository(session)
    visibility = await _visibility_or_404(repository, tournament_id)
    if not visibility.can_view_info:
        return []
    return filter_venues(await repository.list_public_venues(tournament_id), visibility)
