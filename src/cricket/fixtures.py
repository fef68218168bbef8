"""
Automatic fixture arrangement for cricket tournaments.

Matches are laid out on a simple calendar: each day offers the preferred
start times in order, a day holds at most ``max_matches_per_day`` matches and
the next match after the cap moves to the following day with the time
index reset.
"""
import math
import random
from datetime import date, datetime, timedelta
from itertools import combinations
from typing import List, Dict, Optional

from cricket.models import Team, Slot

DEFAULT_PREFERRED_TIMES = ['09:00', '14:00', '18:00']
DEFAULT_MAX_MATCHES_PER_DAY = 4
DEFAULT_GROUP_SIZE = 4
DEFAULT_QUALIFIERS_PER_GROUP = 2


def parse_preferred_times(value) -> List[str]:
    """Normalize a comma separated string (or list) of HH:MM times."""
    if not value:
        return list(DEFAULT_PREFERRED_TIMES)
    if isinstance(value, str):
        value = value.split(',')
    times = []
    for item in value:
        item = str(item).strip()
        try:
            parsed = datetime.strptime(item, '%H:%M')
        except ValueError:
            continue
        times.append(parsed.strftime('%H:%M'))
    return times or list(DEFAULT_PREFERRED_TIMES)


def parse_start_date(value) -> date:
    """Accept a date, datetime or ISO string and return the calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)[:10]).date()


class SlotAllocator:
    """Hands out match slots day by day."""

    def __init__(self, start_date, preferred_times=None, max_per_day=DEFAULT_MAX_MATCHES_PER_DAY):
        self.current_date = parse_start_date(start_date)
        self.preferred_times = parse_preferred_times(preferred_times)
        self.max_per_day = max(1, int(max_per_day or DEFAULT_MAX_MATCHES_PER_DAY))
        self.time_index = 0
        self.matches_today = 0

    def next_slot(self) -> Slot:
        if self.matches_today >= self.max_per_day:
            self.advance_day()
        match_time = self.preferred_times[self.time_index % len(self.preferred_times)]
        self.time_index += 1
        self.matches_today += 1
        return Slot(self.current_date, match_time)

    def advance_day(self, days: int = 1):
        self.current_date = self.current_date + timedelta(days=days)
        self.time_index = 0
        self.matches_today = 0


def _fixture(home: Team, away: Team, slot: Slot, venue: str, match_type: str,
             round_name: str, group: Optional[str] = None) -> Dict:
    return {
        'homeTeamId': home.id,
        'awayTeamId': away.id,
        'homeTeamName': home.name,
        'awayTeamName': away.name,
        'matchDate': slot.isoformat(),
        'venue': venue,
        'matchType': match_type,
        'round': round_name,
        'group': group,
    }


def get_knockout_match_type(teams_in_round: int) -> str:
    """Match type for a knockout round based on how many teams are left."""
    if teams_in_round == 2:
        return 'FINAL'
    elif teams_in_round == 4:
        return 'SEMI_FINAL'
    elif teams_in_round == 8:
        return 'QUARTER_FINAL'
    return 'QUALIFIER'


def arrange_league_matches(teams: List[Team], allocator: SlotAllocator, venue: str) -> List[Dict]:
    """Round robin: every team meets every other team once.

    Round labels group matches in blocks of ``len(teams) / 2``.
    """
    matches = []
    per_round = len(teams) / 2
    for home, away in combinations(teams, 2):
        round_name = f"Round {math.floor(len(matches) / per_round) + 1}"
        matches.append(_fixture(home, away, allocator.next_slot(), venue, 'LEAGUE', round_name))
    return matches


def arrange_knockout_matches(teams: List[Team], allocator: SlotAllocator, venue: str,
                             rng: Optional[random.Random] = None) -> List[Dict]:
    """Single elimination from a shuffled draw.

    An odd team out gets a bye. Winners are unknown at arrangement time, so
    the first team of each pair stands in for the winner in later rounds.
    """
    rng = rng or random.Random()
    current = list(teams)
    rng.shuffle(current)
    matches = []
    round_number = 1

    while len(current) > 1:
        round_matches = []
        next_round = []
        match_type = get_knockout_match_type(len(current))
        for i in range(0, len(current), 2):
            if i + 1 < len(current):
                round_matches.append(_fixture(current[i], current[i + 1], allocator.next_slot(),
                                              venue, match_type, f"Round {round_number}"))
                next_round.append(current[i])
            else:
                next_round.append(current[i])

        matches.extend(round_matches)
        current = next_round
        round_number += 1
        if round_matches:
            allocator.advance_day()

    return matches


def arrange_group_knockout_matches(teams: List[Team], allocator: SlotAllocator, venue: str,
                                   group_size: int = DEFAULT_GROUP_SIZE,
                                   qualifiers_per_group: int = DEFAULT_QUALIFIERS_PER_GROUP,
                                   rng: Optional[random.Random] = None) -> List[Dict]:
    """Round robin inside groups, a rest day, then a knockout of the qualifiers."""
    rng = rng or random.Random()
    group_size = max(2, int(group_size or DEFAULT_GROUP_SIZE))
    qualifiers_per_group = max(1, int(qualifiers_per_group or DEFAULT_QUALIFIERS_PER_GROUP))

    shuffled = list(teams)
    rng.shuffle(shuffled)
    groups = [shuffled[i:i + group_size] for i in range(0, len(shuffled), group_size)]

    matches = []
    for index, group in enumerate(groups):
        group_name = f"Group {chr(65 + index)}"
        for home, away in combinations(group, 2):
            matches.append(_fixture(home, away, allocator.next_slot(), venue,
                                    'LEAGUE', 'Group Stage', group_name))

    qualified = [team for group in groups for team in group[:qualifiers_per_group]]
    if len(qualified) > 1:
        allocator.advance_day()
        matches.extend(arrange_knockout_matches(qualified, allocator, venue, rng))
    return matches


def arrange_village_championship(teams: List[Team], allocator: SlotAllocator, venue: str) -> List[Dict]:
    """Round robin with a single 'Village Championship' round label."""
    return [
        _fixture(home, away, allocator.next_slot(), venue, 'LEAGUE', 'Village Championship')
        for home, away in combinations(teams, 2)
    ]


def arrange_matches(competition_type: str, teams: List[Team], start_date, venue: str,
                    preferred_times=None, max_matches_per_day=None, group_size=None,
                    qualifiers_per_group=None, rng: Optional[random.Random] = None) -> List[Dict]:
    """Arrange fixtures for ``teams`` according to the competition type.

    Unknown types fall back to a league.
    """
    allocator = SlotAllocator(start_date, preferred_times, max_matches_per_day or DEFAULT_MAX_MATCHES_PER_DAY)
    if competition_type == 'KNOCKOUT':
        return arrange_knockout_matches(teams, allocator, venue, rng)
    elif competition_type == 'GROUP_KNOCKOUT':
        return arrange_group_knockout_matches(
            teams, allocator, venue,
            group_size or DEFAULT_GROUP_SIZE,
            qualifiers_per_group or DEFAULT_QUALIFIERS_PER_GROUP,
            rng,
        )
    elif competition_type in ('VILLAGE_CHAMPIONSHIP', 'INTER_VILLAGE'):
        return arrange_village_championship(teams, allocator, venue)
    return arrange_league_matches(teams, allocator, venue)
