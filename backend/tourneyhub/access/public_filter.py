"""
Post-fetch shaping of public payloads.

Callers fetch the full tree once and pass it through here together with the
tournament's ``Visibility``. Hidden tournaments never reach these functions;
the route answers 404 before fetching anything.
"""

from typing import List, Sequence

from ..schemas.public import PublicDivision, PublicGroup, PublicTeam, PublicVenue, Visibility


def filter_group(group: PublicGroup, visibility: Visibility) -> PublicGroup:
    # standings are derived from teams, so hiding teams hides both
    if not visibility.can_view_teams:
        return group.model_copy(update={"teams": [], "standings": []})
    if not visibility.can_view_standings:
        return group.model_copy(update={"standings": []})
    return group


def filter_groups(groups: Sequence[PublicGroup], visibility: Visibility) -> List[PublicGroup]:
    return [filter_group(group, visibility) for group in groups]


def filter_divisions(divisions: Sequence[PublicDivision], visibility: Visibility) -> List[PublicDivision]:
    return [
        division.model_copy(update={"groups": filter_groups(division.groups, visibility)})
        for division in divisions
    ]


def filter_teams(teams: Sequence[PublicTeam], visibility: Visibility) -> List[PublicTeam]:
    # player rosters travel with their team
    if not visibility.can_view_teams:
        return []
    return list(teams)


def filter_venues(venues: Sequence[PublicVenue], visibility: Visibility) -> List[PublicVenue]:
    if not visibility.can_view_info:
        return []
    return list(venues)
