from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement
from sqlmodel import select

from ..enums import LockTarget, UserRole
from ..models import (
    Division,
    Group,
    GroupStanding,
    Pitch,
    Player,
    Team,
    Tournament,
    TournamentAssignment,
    User,
    Venue,
)
from ..schemas.public import (
    DivisionRef,
    PublicDivision,
    PublicGroup,
    PublicGroupTeam,
    PublicPitch,
    PublicPlayer,
    PublicStanding,
    PublicTeam,
    PublicVenue,
)
from ..schemas.tournament import DivisionTree, GroupTree, TeamSummary, TournamentTree

LOCK_MODELS = {
    LockTarget.TOURNAMENT: Tournament,
    LockTarget.DIVISION: Division,
}


@dataclass(frozen=True)
class LockState:
    is_locked: bool
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None

    @classmethod
    def unlocked(cls) -> "LockState":
        return cls(is_locked=False)


class TournamentRepository:
    """
    Read/write access to tournament records.

    Reads are plain selects; the only write that matters for consistency is
    ``set_lock_state``, a single conditional UPDATE.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: str) -> Optional[User]:
        statement = select(User).where(User.id == user_id)
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_global_role(self, user_id: str) -> Optional[UserRole]:
        statement = select(User.role).where(User.id == user_id)
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        statement = (
            select(Tournament)
            .where(Tournament.id == tournament_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_division(self, division_id: str) -> Optional[Division]:
        statement = (
            select(Division)
            .where(Division.id == division_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_division_tree(self, division_id: str) -> Optional[DivisionTree]:
        division = await self.get_division(division_id)
        if not division:
            return None
        trees = await self._build_division_trees([division])
        return trees[0]

    async def get_group(self, group_id: str) -> Optional[Group]:
        statement = select(Group).where(Group.id == group_id)
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_team(self, team_id: str) -> Optional[Team]:
        statement = select(Team).where(Team.id == team_id)
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def get_assignment(self, user_id: str, tournament_id: str) -> Optional[TournamentAssignment]:
        statement = select(TournamentAssignment).where(
            TournamentAssignment.user_id == user_id,
            TournamentAssignment.tournament_id == tournament_id,
            TournamentAssignment.is_active.is_(True),
        )
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def list_assignments(self, tournament_id: str) -> Sequence[TournamentAssignment]:
        statement = (
            select(TournamentAssignment)
            .where(TournamentAssignment.tournament_id == tournament_id)
            .order_by(TournamentAssignment.assigned_at.desc())
        )
        return (await self.session.execute(statement)).scalars().all()

    async def upsert_assignment(
        self,
        *,
        user_id: str,
        tournament_id: str,
        can_configure: bool,
        can_manage_scores: bool,
        is_referee: bool,
        assigned_by: Optional[str],
        merge: bool,
    ) -> TournamentAssignment:
        """
        Write the single (user, tournament) assignment row.

        With ``merge`` the given flags are OR-ed into an existing active row,
        otherwise they replace it. The unique constraint on (user, tournament)
        rejects a concurrent duplicate insert.
        """
        statement = select(TournamentAssignment).where(
            TournamentAssignment.user_id == user_id,
            TournamentAssignment.tournament_id == tournament_id,
        )
        assignment = (await self.session.execute(statement)).scalar_one_or_none()

        if assignment is None:
            assignment = TournamentAssignment(
                user_id=user_id,
                tournament_id=tournament_id,
                can_configure=can_configure,
                can_manage_scores=can_manage_scores,
                is_referee=is_referee,
                assigned_by=assigned_by,
            )
        elif merge and assignment.is_active:
            assignment.can_configure = assignment.can_configure or can_configure
            assignment.can_manage_scores = assignment.can_manage_scores or can_manage_scores
            assignment.is_referee = assignment.is_referee or is_referee
            assignment.assigned_by = assigned_by
        else:
            assignment.can_configure = can_configure
            assignment.can_manage_scores = can_manage_scores
            assignment.is_referee = is_referee
            assignment.is_active = True
            assignment.assigned_by = assigned_by

        self.session.add(assignment)
        await self.session.flush()
        return assignment

    async def list_divisions(self, tournament_id: str) -> Sequence[Division]:
        statement = (
            select(Division)
            .where(Division.tournament_id == tournament_id)
            .order_by(Division.position, Division.created_at)
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(statement)).scalars().all()

    async def get_tournament_tree(self, tournament_id: str) -> Optional[TournamentTree]:
        tournament = await self.get_tournament(tournament_id)
        if not tournament:
            return None
        divisions = await self.list_divisions(tournament_id)
        payload = TournamentTree.model_validate(tournament)
        payload.divisions = await self._build_division_trees(divisions)
        return payload

    async def _build_division_trees(self, divisions: Sequence[Division]) -> List[DivisionTree]:
        division_ids = [division.id for division in divisions]
        groups_by_division: Dict[str, List[Group]] = defaultdict(list)
        teams_by_group: Dict[str, List[Team]] = defaultdict(list)

        if division_ids:
            group_stmt = (
                select(Group)
                .where(Group.division_id.in_(division_ids))
                .order_by(Group.position, Group.created_at)
            )
            for group in (await self.session.execute(group_stmt)).scalars().all():
                groups_by_division[group.division_id].append(group)

        group_ids = [group.id for groups in groups_by_division.values() for group in groups]
        if group_ids:
            team_stmt = select(Team).where(Team.group_id.in_(group_ids)).order_by(Team.name)
            for team in (await self.session.execute(team_stmt)).scalars().all():
                teams_by_group[team.group_id].append(team)

        trees: List[DivisionTree] = []
        for division in divisions:
            groups = [
                GroupTree(
                    id=group.id,
                    name=group.name,
                    teams=[TeamSummary.model_validate(team) for team in teams_by_group[group.id]],
                )
                for group in groups_by_division[division.id]
            ]
            trees.append(
                DivisionTree(
                    id=division.id,
                    tournament_id=division.tournament_id,
                    name=division.name,
                    is_locked=division.is_locked,
                    locked_at=division.locked_at,
                    locked_by=division.locked_by,
                    groups=groups,
                )
            )
        return trees

    async def set_lock_state(
        self,
        target: LockTarget,
        entity_id: str,
        state: LockState,
        *,
        expected_locked: bool,
        guards: Iterable[ColumnElement[bool]] = (),
    ) -> bool:
        """
        Conditionally write the lock fields of one tournament or division.

        The row only changes when its current ``is_locked`` equals
        ``expected_locked`` and every extra guard holds, all inside one
        UPDATE statement. Returns whether a row changed.
        """
        model = LOCK_MODELS[target]
        statement = (
            update(model)
            .where(model.id == entity_id, model.is_locked.is_(expected_locked), *guards)
            .values(is_locked=state.is_locked, locked_at=state.locked_at, locked_by=state.locked_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1

    async def list_public_teams(self, tournament_id: str) -> List[PublicTeam]:
        team_stmt = select(Team).where(Team.tournament_id == tournament_id).order_by(Team.name)
        teams = (await self.session.execute(team_stmt)).scalars().all()
        if not teams:
            return []

        division_stmt = select(Division).where(Division.tournament_id == tournament_id)
        divisions = {
            division.id: DivisionRef(id=division.id, name=division.name)
            for division in (await self.session.execute(division_stmt)).scalars().all()
        }

        players_by_team: Dict[str, List[Player]] = defaultdict(list)
        player_stmt = (
            select(Player)
            .where(Player.team_id.in_([team.id for team in teams]))
            .order_by(Player.jersey_number, Player.last_name)
        )
        for player in (await self.session.execute(player_stmt)).scalars().all():
            players_by_team[player.team_id].append(player)

        return [
            PublicTeam(
                id=team.id,
                name=team.name,
                short_name=team.short_name,
                city=team.city,
                division=divisions.get(team.division_id) if team.division_id else None,
                player_count=len(players_by_team[team.id]),
                players=[PublicPlayer.model_validate(player) for player in players_by_team[team.id]],
            )
            for team in teams
        ]

    async def list_public_groups(self, tournament_id: str) -> List[PublicGroup]:
        group_stmt = (
            select(Group, Division)
            .join(Division, Division.id == Group.division_id)
            .where(Division.tournament_id == tournament_id)
            .order_by(Division.name, Group.name)
        )
        rows = (await self.session.execute(group_stmt)).all()
        if not rows:
            return []

        group_ids = [group.id for group, _ in rows]
        teams_by_group: Dict[str, List[Team]] = defaultdict(list)
        team_stmt = select(Team).where(Team.group_id.in_(group_ids)).order_by(Team.name)
        for team in (await self.session.execute(team_stmt)).scalars().all():
            teams_by_group[team.group_id].append(team)

        standings_by_group: Dict[str, List[PublicStanding]] = defaultdict(list)
        standing_stmt = (
            select(GroupStanding, Team.name)
            .join(Team, Team.id == GroupStanding.team_id)
            .where(GroupStanding.group_id.in_(group_ids))
        )
        for standing, team_name in (await self.session.execute(standing_stmt)).all():
            standings_by_group[standing.group_id].append(
                PublicStanding(
                    team_id=standing.team_id,
                    team_name=team_name,
                    played=standing.played,
                    won=standing.won,
                    drawn=standing.drawn,
                    lost=standing.lost,
                    goals_for=standing.goals_for,
                    goals_against=standing.goals_against,
                    goal_difference=standing.goals_for - standing.goals_against,
                    points=standing.points,
                )
            )
        for standings in standings_by_group.values():
            standings.sort(key=lambda row: (row.points, row.goal_difference, row.goals_for), reverse=True)

        return [
            PublicGroup(
                id=group.id,
                name=group.name,
                division=DivisionRef(id=division.id, name=division.name),
                teams=[PublicGroupTeam.model_validate(team) for team in teams_by_group[group.id]],
                standings=standings_by_group[group.id],
            )
            for group, division in rows
        ]

    async def list_public_divisions(self, tournament_id: str) -> List[PublicDivision]:
        division_stmt = (
            select(Division)
            .where(Division.tournament_id == tournament_id)
            .order_by(Division.name)
        )
        divisions = (await self.session.execute(division_stmt)).scalars().all()
        groups_by_division: Dict[str, List[PublicGroup]] = defaultdict(list)
        for group in await self.list_public_groups(tournament_id):
            groups_by_division[group.division.id].append(group)
        return [
            PublicDivision(id=division.id, name=division.name, groups=groups_by_division[division.id])
            for division in divisions
        ]

    async def list_public_venues(self, tournament_id: str) -> List[PublicVenue]:
        venue_stmt = select(Venue).where(Venue.tournament_id == tournament_id).order_by(Venue.name)
        venues = (await self.session.execute(venue_stmt)).scalars().all()
        if not venues:
            return []

        pitches_by_venue: Dict[str, List[Pitch]] = defaultdict(list)
        pitch_stmt = (
            select(Pitch)
            .where(Pitch.venue_id.in_([venue.id for venue in venues]))
            .order_by(Pitch.name)
        )
        for pitch in (await self.session.execute(pitch_stmt)).scalars().all():
            pitches_by_venue[pitch.venue_id].append(pitch)

        return [
            PublicVenue(
                id=venue.id,
                name=venue.name,
                street_name=venue.street_name,
                postal_code=venue.postal_code,
                city=venue.city,
                latitude=venue.latitude,
                longitude=venue.longitude,
                pitches=[PublicPitch.model_validate(pitch) for pitch in pitches_by_venue[venue.id]],
            )
            for venue in venues
        ]
