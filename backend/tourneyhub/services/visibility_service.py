from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Tournament
from ..schemas.public import Visibility
from .repository import TournamentRepository


def visibility_for(tournament: Optional[Tournament]) -> Visibility:
    # missing and hidden tournaments are indistinguishable to public readers
    if not tournament or not tournament.tournament_visible:
        return Visibility()
    return Visibility(
        can_view_tournament=True,
        can_view_teams=tournament.teams_published,
        can_view_standings=tournament.standings_published,
        can_view_info=tournament.info_published,
    )


class VisibilityResolver:
    def __init__(self, session: AsyncSession, repository: Optional[TournamentRepository] = None) -> None:
        self.session = session
        self.repository = repository or TournamentRepository(session)

    async def resolve(self, tournament_id: str) -> Visibility:
        tournament = await self.repository.get_tournament(tournament_id)
        return visibility_for(tournament)
