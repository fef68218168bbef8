"""
Unit tests for automatic fixture arrangement.
"""
import random
import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cricket.models import Team
from cricket.fixtures import (
    SlotAllocator,
    parse_preferred_times,
    parse_start_date,
    get_knockout_match_type,
    arrange_league_matches,
    arrange_knockout_matches,
    arrange_group_knockout_matches,
    arrange_village_championship,
    arrange_matches,
)


def make_teams(count):
    return [Team(f"t{i}", f"Team {i}") for i in range(1, count + 1)]


class TestSlotAllocator:
    """Tests for the day-by-day slot allocator."""

    def test_cycles_preferred_times(self):
        """Test slots use the preferred times in order."""
        allocator = SlotAllocator('2026-05-01', '09:00,14:00,18:00', 4)
        times = [allocator.next_slot().time for _ in range(4)]
        assert times == ['09:00', '14:00', '18:00', '09:00']

    def test_moves_to_next_day_after_cap(self):
        """Test the fifth match of a 4-per-day schedule lands on the next morning."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        slots = [allocator.next_slot() for _ in range(5)]
        assert slots[3].date == date(2026, 5, 1)
        assert slots[4].date == date(2026, 5, 2)
        assert slots[4].time == '09:00'

    def test_advance_day_resets_time_index(self):
        """Test advancing a day restarts from the first preferred time."""
        allocator = SlotAllocator('2026-05-01', ['10:00', '15:00'], 4)
        allocator.next_slot()
        allocator.advance_day()
        slot = allocator.next_slot()
        assert slot.date == date(2026, 5, 2)
        assert slot.time == '10:00'

    def test_slot_isoformat(self):
        """Test slots render as ISO datetimes."""
        allocator = SlotAllocator('2026-05-01T00:00:00', ['07:30'], 2)
        assert allocator.next_slot().isoformat() == '2026-05-01T07:30:00'


class TestParsing:
    """Tests for input normalization helpers."""

    def test_default_times(self):
        """Test empty input falls back to the default times."""
        assert parse_preferred_times(None) == ['09:00', '14:00', '18:00']
        assert parse_preferred_times('') == ['09:00', '14:00', '18:00']

    def test_invalid_times_dropped(self):
        """Test malformed entries are ignored."""
        assert parse_preferred_times('8:00, noon, 16:30') == ['08:00', '16:30']

    def test_all_invalid_times_fall_back(self):
        """Test a list with no valid time falls back to defaults."""
        assert parse_preferred_times('later') == ['09:00', '14:00', '18:00']

    def test_parse_start_date(self):
        """Test dates are accepted as strings or date objects."""
        assert parse_start_date('2026-05-01') == date(2026, 5, 1)
        assert parse_start_date('2026-05-01T10:00:00') == date(2026, 5, 1)
        assert parse_start_date(date(2026, 5, 1)) == date(2026, 5, 1)


class TestLeague:
    """Tests for round-robin league arrangement."""

    def test_every_pair_once(self, sample_teams):
        """Test four teams produce six matches covering every pair."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_league_matches(sample_teams, allocator, 'Ground')
        pairs = {frozenset((m['homeTeamId'], m['awayTeamId'])) for m in matches}
        assert len(matches) == 6
        assert len(pairs) == 6

    def test_round_labels(self, sample_teams):
        """Test matches are labelled in blocks of half the team count."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_league_matches(sample_teams, allocator, 'Ground')
        assert [m['round'] for m in matches] == [
            'Round 1', 'Round 1', 'Round 2', 'Round 2', 'Round 3', 'Round 3'
        ]

    def test_schedule_dates(self, sample_teams):
        """Test the daily cap pushes the last two matches to day two."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_league_matches(sample_teams, allocator, 'Ground')
        assert [m['matchDate'] for m in matches] == [
            '2026-05-01T09:00:00',
            '2026-05-01T14:00:00',
            '2026-05-01T18:00:00',
            '2026-05-01T09:00:00',
            '2026-05-02T09:00:00',
            '2026-05-02T14:00:00',
        ]

    def test_match_shape(self, sample_teams):
        """Test generated matches carry venue, type and team names."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        match = arrange_league_matches(sample_teams, allocator, 'Ground')[0]
        assert match['venue'] == 'Ground'
        assert match['matchType'] == 'LEAGUE'
        assert match['homeTeamName'] == 'Team A'
        assert match['awayTeamName'] == 'Team B'
        assert match['group'] is None


class TestKnockout:
    """Tests for knockout arrangement."""

    def test_match_type_names(self):
        """Test match types by teams remaining."""
        assert get_knockout_match_type(2) == 'FINAL'
        assert get_knockout_match_type(4) == 'SEMI_FINAL'
        assert get_knockout_match_type(8) == 'QUARTER_FINAL'
        assert get_knockout_match_type(6) == 'QUALIFIER'

    def test_four_teams(self, sample_teams):
        """Test four teams give two semi-finals then a final."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_knockout_matches(sample_teams, allocator, 'Ground', random.Random(1))
        assert [m['matchType'] for m in matches] == ['SEMI_FINAL', 'SEMI_FINAL', 'FINAL']
        assert [m['round'] for m in matches] == ['Round 1', 'Round 1', 'Round 2']

    def test_final_on_next_day(self, sample_teams):
        """Test a day gap separates rounds."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_knockout_matches(sample_teams, allocator, 'Ground', random.Random(1))
        assert matches[0]['matchDate'].startswith('2026-05-01')
        assert matches[1]['matchDate'].startswith('2026-05-01')
        assert matches[2]['matchDate'] == '2026-05-02T09:00:00'

    def test_home_team_advances(self, sample_teams):
        """Test the final is played between the home teams of the semi-finals."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_knockout_matches(sample_teams, allocator, 'Ground', random.Random(7))
        final = matches[-1]
        assert final['homeTeamId'] == matches[0]['homeTeamId']
        assert final['awayTeamId'] == matches[1]['homeTeamId']

    def test_odd_team_gets_bye(self):
        """Test five teams need four matches with byes."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_knockout_matches(make_teams(5), allocator, 'Ground', random.Random(3))
        assert len(matches) == 4
        assert [m['matchType'] for m in matches] == ['QUALIFIER', 'QUALIFIER', 'QUALIFIER', 'FINAL']

    def test_seeded_shuffle_is_repeatable(self):
        """Test the same seed gives the same draw."""
        first = arrange_knockout_matches(make_teams(8), SlotAllocator('2026-05-01'), 'G', random.Random(42))
        second = arrange_knockout_matches(make_teams(8), SlotAllocator('2026-05-01'), 'G', random.Random(42))
        assert first == second
        assert len(first) == 7
        assert sum(1 for m in first if m['matchType'] == 'QUARTER_FINAL') == 4


class TestGroupKnockout:
    """Tests for group stage followed by knockout."""

    def test_eight_teams_two_groups(self):
        """Test two groups of four play 12 group matches and a 4-team knockout."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_group_knockout_matches(make_teams(8), allocator, 'Ground', 4, 2, random.Random(5))
        group_matches = [m for m in matches if m['round'] == 'Group Stage']
        knockout = [m for m in matches if m['round'] != 'Group Stage']
        assert len(group_matches) == 12
        assert {m['group'] for m in group_matches} == {'Group A', 'Group B'}
        assert [m['matchType'] for m in knockout] == ['SEMI_FINAL', 'SEMI_FINAL', 'FINAL']

    def test_knockout_after_group_stage(self):
        """Test knockout matches start after the last group day."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_group_knockout_matches(make_teams(8), allocator, 'Ground', 4, 2, random.Random(5))
        last_group_day = max(m['matchDate'][:10] for m in matches if m['round'] == 'Group Stage')
        first_knockout_day = min(m['matchDate'][:10] for m in matches if m['round'] != 'Group Stage')
        assert first_knockout_day > last_group_day

    def test_qualifiers_come_from_groups(self):
        """Test only the first qualifiers of each group reach the knockout."""
        allocator = SlotAllocator('2026-05-01', None, 4)
        matches = arrange_group_knockout_matches(make_teams(6), allocator, 'Ground', 3, 1, random.Random(9))
        knockout = [m for m in matches if m['round'] != 'Group Stage']
        assert len(knockout) == 1
        assert knockout[0]['matchType'] == 'FINAL'


class TestDispatch:
    """Tests for competition type dispatch."""

    def test_village_championship(self):
        """Test village formats use a single round label."""
        matches = arrange_matches('INTER_VILLAGE', make_teams(3), '2026-05-01', 'Ground')
        assert len(matches) == 3
        assert {m['round'] for m in matches} == {'Village Championship'}

    def test_direct_village_arrangement(self):
        """Test the village arrangement covers every pair."""
        allocator = SlotAllocator('2026-05-01')
        assert len(arrange_village_championship(make_teams(4), allocator, 'Ground')) == 6

    @pytest.mark.parametrize("competition_type", ['LEAGUE', 'ROUND_ROBIN', 'CUSTOM', 'AUCTION_LEAGUE'])
    def test_league_fallback(self, competition_type):
        """Test league-like and unknown types produce a round robin."""
        matches = arrange_matches(competition_type, make_teams(4), '2026-05-01', 'Ground')
        assert len(matches) == 6
        assert matches[0]['round'] == 'Round 1'

    def test_knockout_dispatch_uses_rng(self):
        """Test the knockout branch honours the injected random generator."""
        first = arrange_matches('KNOCKOUT', make_teams(4), '2026-05-01', 'G', rng=random.Random(11))
        second = arrange_matches('KNOCKOUT', make_teams(4), '2026-05-01', 'G', rng=random.Random(11))
        assert first == second

    def test_max_matches_per_day_respected(self):
        """Test a cap of two matches per day."""
        matches = arrange_matches('LEAGUE', make_teams(4), '2026-05-01', 'G', max_matches_per_day=2)
        days = [m['matchDate'][:10] for m in matches]
        assert days == ['2026-05-01', '2026-05-01', '2026-05-02', '2026-05-02', '2026-05-03', '2026-05-03']
