"""
Single elimination bracket construction.

Builds the full match tree from an unseeded player list: round 1 holds the
shuffled players, later rounds hold TBD slots linked to their source matches.
"""
import logging
import random
from typing import List, Optional, Callable

from engine.errors import ValidationError
from engine.models import Player, Match, Round, BracketDocument, MatchStatus, TBD_ID
from engine.rounds import plan_rounds, count_matches, MAX_ROUNDS
from engine.progression import resolve_byes

logger = logging.getLogger(__name__)

EMPTY_TOURNAMENT = "Empty Tournament"
NOT_ENOUGH_PARTICIPANTS = "Not Enough Participants"

# Largest field the round safety cap can take down to a single winner.
MAX_PLAYERS = 2 ** MAX_ROUNDS

Shuffle = Callable[[List[Player]], List[Player]]


def random_shuffle(rng: Optional[random.Random] = None) -> Shuffle:
    """Return a uniform shuffle drawing from ``rng`` (a fresh Random by default)."""
    rng = rng or random.Random()

    def shuffle(players: List[Player]) -> List[Player]:
        shuffled = list(players)
        rng.shuffle(shuffled)
        return shuffled

    return shuffle


def identity_shuffle(players: List[Player]) -> List[Player]:
    """Keep the given order. Used for deterministic brackets in tests and demos."""
    return list(players)


def _match_id(counter: int) -> str:
    return f"match-{counter}"


def _validate_players(players: List[Player]):
    seen = set()
    for player in players:
        if not isinstance(player, Player):
            raise ValidationError(f"Expected Player, got {type(player).__name__}", field='players')
        if player.id == TBD_ID:
            raise ValidationError(f"'{TBD_ID}' is reserved for empty slots", field='id')
        if player.id in seen:
            raise ValidationError(f"Player {player.id} appears more than once", field='players')
        seen.add(player.id)
    if len(players) > MAX_PLAYERS:
        raise ValidationError(f"At most {MAX_PLAYERS} participants are supported", field='players')


def build_bracket(players: List[Player], existing: Optional[BracketDocument] = None,
                  shuffle: Optional[Shuffle] = None) -> BracketDocument:
    """
    Build a single elimination bracket for ``players``.

    If ``existing`` is a non-empty bracket it is returned unchanged, so a
    repeated generate request never discards recorded results.

    Degenerate input does not raise: zero players gives a single
    "Empty Tournament" round and one player gives a single
    "Not Enough Participants" round, both without matches.
    """
    if existing is not None and not existing.is_empty():
        logger.info("Bracket already exists with %d rounds, skipping generation", len(existing.rounds))
        return existing

    players = list(players or [])
    if not players:
        logger.warning("No participants provided")
        return BracketDocument([Round(EMPTY_TOURNAMENT)])
    if len(players) < 2:
        logger.warning("Need at least 2 participants, got %d", len(players))
        return BracketDocument([Round(NOT_ENOUGH_PARTICIPANTS)])

    _validate_players(players)

    shuffle = shuffle or random_shuffle()
    shuffled = shuffle(players)
    if sorted(p.id for p in shuffled) != sorted(p.id for p in players):
        raise ValidationError("Shuffle must return a permutation of the players", field='players')

    rounds_info = plan_rounds(len(shuffled))
    logger.info("Building single elimination bracket for %d players: %d rounds, %d matches",
                len(shuffled), len(rounds_info), count_matches(len(shuffled)))

    rounds: List[Round] = []
    counter = 1

    for round_index, round_info in enumerate(rounds_info):
        matches = []

        if round_index == 0:
            player_index = 0
            for i in range(round_info['regular_match_count']):
                pair = [shuffled[player_index], shuffled[player_index + 1]]
                player_index += 2
                matches.append(Match(
                    id=_match_id(counter),
                    round_index=round_index,
                    slot_index=i,
                    participants=pair,
                    source_match_ids=[],
                    status=MatchStatus.READY,
                ))
                counter += 1

            if round_info['has_auto_advance']:
                # Leftover player: a bye never needs a decision
                leftover = shuffled[player_index]
                matches.append(Match(
                    id=_match_id(counter),
                    round_index=round_index,
                    slot_index=round_info['regular_match_count'],
                    participants=[leftover],
                    source_match_ids=[],
                    status=MatchStatus.COMPLETED,
                    winner_id=leftover.id,
                    is_bye=True,
                ))
                counter += 1
        else:
            previous = rounds[round_index - 1].matches
            for i in range(round_info['total_match_count']):
                sources = [m.id for m in previous[i * 2:i * 2 + 2]]
                matches.append(Match(
                    id=_match_id(counter),
                    round_index=round_index,
                    slot_index=i,
                    participants=[None, None],
                    source_match_ids=sources,
                    status=MatchStatus.WAITING,
                ))
                counter += 1

        rounds.append(Round(round_info['name'], matches))

    bracket = BracketDocument(rounds)
    resolve_byes(bracket)
    return bracket
