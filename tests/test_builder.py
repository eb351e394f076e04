"""
Unit tests for single elimination bracket construction.
"""
import random
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import make_players
from engine.builder import (
    build_bracket,
    identity_shuffle,
    random_shuffle,
    EMPTY_TOURNAMENT,
    NOT_ENOUGH_PARTICIPANTS,
    MAX_PLAYERS,
)
from engine.errors import ValidationError
from engine.models import Player, MatchStatus
from engine.progression import declare_winner
from engine.rounds import plan_rounds, count_matches


def first_round_ids(bracket):
    ids = []
    for match in bracket.rounds[0].matches:
        ids.extend(p.id for p in match.real_players)
    return ids


class TestDegenerateInput:
    """Tests for brackets with fewer than two players."""

    def test_empty_tournament(self):
        """No players returns a named placeholder round without matches."""
        bracket = build_bracket([])
        assert bracket is not None
        assert len(bracket.rounds) == 1
        assert bracket.rounds[0].name == EMPTY_TOURNAMENT
        assert bracket.rounds[0].matches == []
        assert bracket.is_empty()

    def test_none_players(self):
        """None is treated like an empty list."""
        bracket = build_bracket(None)
        assert bracket.rounds[0].name == EMPTY_TOURNAMENT

    def test_single_player(self):
        """One player returns the not-enough placeholder."""
        bracket = build_bracket([Player("a", "A")])
        assert len(bracket.rounds) == 1
        assert bracket.rounds[0].name == NOT_ENOUGH_PARTICIPANTS
        assert bracket.rounds[0].matches == []

    def test_duplicate_players_rejected(self):
        """The same player id cannot appear twice."""
        with pytest.raises(ValidationError):
            build_bracket([Player("a", "A"), Player("a", "A again")])

    def test_tbd_player_id_rejected(self):
        """A player id equal to the empty-slot marker would vanish on reload."""
        with pytest.raises(ValidationError) as exc:
            build_bracket([Player("TBD", "Tom"), Player("b", "B")])
        assert exc.value.field == 'id'

    def test_too_many_players_rejected(self):
        """Fields beyond the round cap are rejected."""
        with pytest.raises(ValidationError):
            build_bracket(make_players(MAX_PLAYERS + 1), shuffle=identity_shuffle)

    def test_bad_shuffle_rejected(self):
        """A shuffle that drops a player is rejected."""
        with pytest.raises(ValidationError):
            build_bracket(make_players(4), shuffle=lambda players: players[:3])


class TestFourPlayers:
    """Tests for the four player bracket with a fixed order."""

    def test_first_round_pairs(self, players_abcd):
        """Players are paired in shuffled order."""
        bracket = build_bracket(players_abcd, shuffle=identity_shuffle)
        first = bracket.rounds[0].matches
        assert [m.display_name for m in first] == ["A vs B", "C vs D"]
        assert all(m.status == MatchStatus.READY for m in first)
        assert all(m.source_match_ids == [] for m in first)

    def test_final_linked_to_sources(self, players_abcd):
        """The Final takes its slots from both semi-finals in order."""
        bracket = build_bracket(players_abcd, shuffle=identity_shuffle)
        final = bracket.rounds[1].matches[0]
        assert bracket.rounds[1].name == "Final"
        assert final.source_match_ids == ["match-1", "match-2"]
        assert final.status == MatchStatus.WAITING
        assert final.display_name == "TBD vs TBD"

    def test_match_ids_and_positions(self, players_abcd):
        """Ids are sequential and positions match the layout."""
        bracket = build_bracket(players_abcd, shuffle=identity_shuffle)
        assert [m.id for m in bracket.all_matches()] == ["match-1", "match-2", "match-3"]
        for round_index, rnd in enumerate(bracket.rounds):
            for slot_index, match in enumerate(rnd.matches):
                assert match.round_index == round_index
                assert match.slot_index == slot_index


class TestThreePlayers:
    """Tests for the three player bracket with a first round bye."""

    def test_first_round_bye(self, players_abc):
        """The leftover player gets a completed bye."""
        bracket = build_bracket(players_abc, shuffle=identity_shuffle)
        regular, bye = bracket.rounds[0].matches
        assert regular.display_name == "A vs B"
        assert regular.status == MatchStatus.READY
        assert bye.participants == [players_abc[2]]
        assert bye.status == MatchStatus.COMPLETED
        assert bye.winner_id == "c"
        assert bye.is_bye
        assert bye.display_name == "C (Bye)"

    def test_bye_winner_propagated(self, players_abc):
        """The bye winner is already in the Final before any result."""
        bracket = build_bracket(players_abc, shuffle=identity_shuffle)
        final = bracket.final_match
        assert final.participants[0] is None
        assert final.participants[1].id == "c"
        assert final.status == MatchStatus.WAITING
        assert final.display_name == "TBD vs C"


class TestChainedByes:
    """Tests for byes that cascade over several rounds."""

    def test_nine_players_cascade_to_final(self):
        """The round 1 bye is carried through two bye rounds into the Final."""
        players = make_players(9)
        bracket = build_bracket(players, shuffle=identity_shuffle)

        round2_bye = bracket.rounds[1].matches[2]
        semi_bye = bracket.rounds[2].matches[1]
        assert round2_bye.source_match_ids == ["match-5"]
        assert round2_bye.is_bye and round2_bye.status == MatchStatus.COMPLETED
        assert semi_bye.is_bye and semi_bye.winner_id == "p9"
        assert semi_bye.display_name == "P9 (Bye)"

        final = bracket.final_match
        assert final.participants[1].id == "p9"
        assert final.status == MatchStatus.WAITING

    def test_six_players_waits_for_played_match(self):
        """A second round bye behind a real match waits for its result."""
        bracket = build_bracket(make_players(6), shuffle=identity_shuffle)
        lone = bracket.rounds[1].matches[1]
        assert lone.source_match_ids == ["match-3"]
        assert lone.status == MatchStatus.WAITING
        assert not lone.is_bye

        declare_winner(bracket, "match-3", "p5")
        assert lone.status == MatchStatus.COMPLETED
        assert lone.is_bye
        assert lone.winner_id == "p5"
        assert bracket.final_match.participants[1].id == "p5"


class TestIdempotentBuild:
    """Tests for building over an existing bracket."""

    def test_existing_bracket_returned(self, players_abcd):
        """A populated bracket is returned as is, results included."""
        bracket = build_bracket(players_abcd, shuffle=identity_shuffle)
        declare_winner(bracket, "match-1", "a")
        snapshot = bracket.to_list()

        again = build_bracket(make_players(6), existing=bracket)
        assert again is bracket
        assert again.to_list() == snapshot

    def test_placeholder_is_rebuilt(self, players_abcd):
        """An empty placeholder bracket does not block generation."""
        placeholder = build_bracket([])
        bracket = build_bracket(players_abcd, existing=placeholder, shuffle=identity_shuffle)
        assert bracket is not placeholder
        assert len(bracket.rounds) == 2


class TestShuffle:
    """Tests for the injectable shuffle."""

    def test_seeded_shuffle_is_reproducible(self):
        """The same seed yields the same first round."""
        players = make_players(10)
        one = build_bracket(players, shuffle=random_shuffle(random.Random(7)))
        two = build_bracket(players, shuffle=random_shuffle(random.Random(7)))
        assert one.to_list() == two.to_list()

    def test_shuffle_does_not_mutate_input(self):
        """The caller's list keeps its order."""
        players = make_players(10)
        ids = [p.id for p in players]
        build_bracket(players, shuffle=random_shuffle(random.Random(3)))
        assert [p.id for p in players] == ids

    def test_default_shuffle_keeps_every_player(self):
        """The default random shuffle is a permutation."""
        players = make_players(11)
        bracket = build_bracket(players)
        assert sorted(first_round_ids(bracket)) == sorted(p.id for p in players)


@pytest.mark.slow
class TestBracketShape:
    """Structural properties over many player counts."""

    @pytest.mark.parametrize("n", range(2, 65))
    def test_round_sizes_match_plan(self, n):
        """Round sizes and names follow the plan and end in one Final."""
        bracket = build_bracket(make_players(n), shuffle=random_shuffle(random.Random(n)))
        plan = plan_rounds(n)
        assert [len(r.matches) for r in bracket.rounds] == [p['total_match_count'] for p in plan]
        assert [r.name for r in bracket.rounds] == [p['name'] for p in plan]
        assert len(bracket.rounds[-1].matches) == 1
        assert sum(1 for r in bracket.rounds if len(r.matches) == 1) == 1
        assert len(bracket.all_matches()) == count_matches(n)

    @pytest.mark.parametrize("n", range(2, 65))
    def test_players_conserved(self, n):
        """Every player appears in exactly one first round match."""
        players = make_players(n)
        bracket = build_bracket(players, shuffle=random_shuffle(random.Random(n)))
        ids = first_round_ids(bracket)
        assert len(ids) == n
        assert sorted(ids) == sorted(p.id for p in players)

    @pytest.mark.parametrize("n", range(2, 65))
    def test_sources_in_previous_round(self, n):
        """Later matches reference one or two matches of the previous round."""
        bracket = build_bracket(make_players(n), shuffle=identity_shuffle)
        for round_index, rnd in enumerate(bracket.rounds[1:], start=1):
            previous_ids = {m.id for m in bracket.rounds[round_index - 1].matches}
            for match in rnd.matches:
                assert 1 <= len(match.source_match_ids) <= 2
                assert set(match.source_match_ids) <= previous_ids

    @pytest.mark.parametrize("n", range(2, 65))
    def test_each_match_feeds_one_downstream(self, n):
        """Every non-final match is the source of exactly one later match."""
        bracket = build_bracket(make_players(n), shuffle=identity_shuffle)
        sources = [sid for m in bracket.all_matches() for sid in m.source_match_ids]
        for match in bracket.all_matches()[:-1]:
            assert sources.count(match.id) == 1

    @pytest.mark.parametrize("n", [2, 4, 8, 16, 32, 64])
    def test_power_of_two_has_no_byes(self, n):
        """Power-of-two fields never create a bye."""
        bracket = build_bracket(make_players(n), shuffle=identity_shuffle)
        assert not any(m.is_bye for m in bracket.all_matches())
        assert all(len(m.source_match_ids) == 2 for r in bracket.rounds[1:] for m in r.matches)

    @pytest.mark.parametrize("n", range(2, 65))
    def test_one_bye_per_odd_round(self, n):
        """Rounds entered by an odd number of players hold exactly one single-player slot."""
        bracket = build_bracket(make_players(n), shuffle=identity_shuffle)
        for rnd, info in zip(bracket.rounds, plan_rounds(n)):
            if rnd is bracket.rounds[0]:
                lone = [m for m in rnd.matches if len(m.participants) == 1]
            else:
                lone = [m for m in rnd.matches if len(m.source_match_ids) == 1]
            assert len(lone) == (1 if info['has_auto_advance'] else 0)
        first_byes = [m for m in bracket.rounds[0].matches if m.is_bye]
        for bye in first_byes:
            assert bye.status == MatchStatus.COMPLETED
            assert bye.winner_id == bye.participants[0].id
