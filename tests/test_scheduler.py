"""Tests for round-robin pairing and date allocation."""

from collections import Counter
from datetime import datetime, timedelta

import pytest

from padeliga.core.errors import InsufficientSchedulingWindowError, InsufficientTeamsError
from padeliga.core.scheduler import Pairing, allocate_dates, generate_round_robin


def _teams(n: int) -> list[str]:
    return [f"t-{i}" for i in range(n)]


class TestRoundRobin:
    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8, 11, 16])
    def test_every_pair_exactly_once(self, n: int):
        pairings = generate_round_robin(_teams(n))
        assert len(pairings) == n * (n - 1) // 2
        pairs = Counter(frozenset((p.team_a_id, p.team_b_id)) for p in pairings)
        assert all(count == 1 for count in pairs.values())
        assert all(len(pair) == 2 for pair in pairs)
        assert len(pairs) == n * (n - 1) // 2

    @pytest.mark.parametrize("n", [4, 5, 8, 9])
    def test_no_team_twice_in_a_round(self, n: int):
        pairings = generate_round_robin(_teams(n))
        by_round: dict[int, list[str]] = {}
        for p in pairings:
            by_round.setdefault(p.round_number, []).extend([p.team_a_id, p.team_b_id])
        for teams in by_round.values():
            assert len(teams) == len(set(teams))

    def test_even_round_count(self):
        pairings = generate_round_robin(_teams(8))
        assert {p.round_number for p in pairings} == set(range(1, 8))
        for r in range(1, 8):
            assert len([p for p in pairings if p.round_number == r]) == 4

    def test_odd_teams_use_bye(self):
        pairings = generate_round_robin(_teams(5))
        # 5 teams with a bye: 5 rounds of 2 pairings
        assert len({p.round_number for p in pairings}) == 5
        assert all(None not in (p.team_a_id, p.team_b_id) for p in pairings)
        sitting_out = Counter()
        for r in range(1, 6):
            round_pairs = [p for p in pairings if p.round_number == r]
            playing = {t for p in round_pairs for t in (p.team_a_id, p.team_b_id)}
            (idle,) = set(_teams(5)) - playing
            sitting_out[idle] += 1
        assert all(count == 1 for count in sitting_out.values())

    def test_two_teams_single_pair(self):
        assert generate_round_robin(["a", "b"]) == [
            Pairing(round_number=1, pairing_index=0, team_a_id="a", team_b_id="b")
        ]

    def test_four_team_order_is_circle_method(self):
        pairings = generate_round_robin(["A", "B", "C", "D"])
        assert [(p.team_a_id, p.team_b_id) for p in pairings] == [
            ("A", "D"),
            ("B", "C"),
            ("A", "C"),
            ("D", "B"),
            ("A", "B"),
            ("C", "D"),
        ]

    def test_each_team_plays_n_minus_one(self):
        team_ids = _teams(6)
        played = Counter()
        for p in generate_round_robin(team_ids):
            played[p.team_a_id] += 1
            played[p.team_b_id] += 1
        assert all(played[t] == 5 for t in team_ids)

    def test_deterministic(self):
        assert generate_round_robin(_teams(7)) == generate_round_robin(_teams(7))

    @pytest.mark.parametrize("team_ids", [[], ["solo"]])
    def test_fewer_than_two_teams(self, team_ids: list[str]):
        with pytest.raises(InsufficientTeamsError):
            generate_round_robin(team_ids)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            generate_round_robin(["a", "b", "a"])


class TestAllocateDates:
    START = datetime(2026, 5, 1)

    def test_even_spacing(self):
        pairings = generate_round_robin(_teams(4))  # 6 pairings
        drafts = allocate_dates(pairings, self.START, self.START + timedelta(days=20), "Club")
        # floor(20 / 6) = 3 days apart
        assert [d.scheduled_date for d in drafts] == [
            self.START + timedelta(days=3 * k) for k in range(6)
        ]
        assert all(d.location == "Club" for d in drafts)
        assert all(d.status == "scheduled" for d in drafts)

    def test_preserves_pairing_order(self):
        pairings = generate_round_robin(_teams(5))
        drafts = allocate_dates(pairings, self.START, self.START + timedelta(days=30))
        assert [(d.team_a_id, d.team_b_id) for d in drafts] == [
            (p.team_a_id, p.team_b_id) for p in pairings
        ]
        assert [d.round_number for d in drafts] == [p.round_number for p in pairings]

    @pytest.mark.parametrize("n,days", [(2, 1), (4, 6), (4, 10), (5, 10), (6, 45), (8, 28)])
    def test_dates_within_window_and_non_decreasing(self, n: int, days: int):
        end = self.START + timedelta(days=days)
        drafts = allocate_dates(generate_round_robin(_teams(n)), self.START, end)
        dates = [d.scheduled_date for d in drafts]
        assert dates == sorted(dates)
        assert all(self.START <= d <= end for d in dates)

    def test_window_exactly_one_day_per_match(self):
        drafts = allocate_dates(
            generate_round_robin(_teams(4)), self.START, self.START + timedelta(days=6)
        )
        assert len({d.scheduled_date for d in drafts}) == 6

    def test_window_too_narrow(self):
        pairings = generate_round_robin(_teams(4))
        with pytest.raises(InsufficientSchedulingWindowError, match=r"Not enough days \(5\)"):
            allocate_dates(pairings, self.START, self.START + timedelta(days=5))

    def test_partial_days_are_floored(self):
        pairings = generate_round_robin(_teams(3))  # 3 pairings
        end = self.START + timedelta(days=2, hours=23)
        with pytest.raises(InsufficientSchedulingWindowError):
            allocate_dates(pairings, self.START, end)

    def test_empty_pairings(self):
        assert allocate_dates([], self.START, self.START) == []
