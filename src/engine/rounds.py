"""
Round structure planning for single elimination brackets.

Unlike a padded power-of-two draw, an odd number of players left in a round
is handled by giving one player an automatic advance, so every round has
ceil(players / 2) matches.
"""
import logging
from typing import List, Dict

logger = logging.getLogger(__name__)

# Safety cap on the number of planned rounds.
MAX_ROUNDS = 10


def get_round_name(winners_count: int, round_number: int) -> str:
    """Get the name of a round based on how many winners it produces."""
    if winners_count == 1:
        return "Final"
    elif winners_count == 2:
        return "Semi-Final"
    elif winners_count == 4:
        return "Quarter-Final"
    else:
        return f"Round {round_number}"


def plan_rounds(player_count: int) -> List[Dict]:
    """
    Compute the round structure for ``player_count`` players.

    Returns a list of round descriptors, one per round, with:
    - regular_match_count: matches with two players
    - has_auto_advance: True if one player advances without playing
    - total_match_count: regular matches plus the auto-advance slot
    - winners_count: players left after the round
    - name: display name of the round

    Fewer than two players yields an empty list; callers treat that as
    "no participants" or "not enough participants".
    """
    rounds = []
    current = player_count
    round_number = 1

    while current > 1:
        regular_match_count = current // 2
        has_auto_advance = current % 2 == 1
        total_match_count = regular_match_count + (1 if has_auto_advance else 0)
        winners_count = total_match_count

        rounds.append({
            'regular_match_count': regular_match_count,
            'has_auto_advance': has_auto_advance,
            'total_match_count': total_match_count,
            'winners_count': winners_count,
            'name': get_round_name(winners_count, round_number),
        })

        current = winners_count
        round_number += 1

        if round_number > MAX_ROUNDS:
            if current > 1:
                logger.warning("Round planning stopped at %d rounds with %d players left",
                               MAX_ROUNDS, current)
            break

    return rounds


def count_matches(player_count: int) -> int:
    """Total number of match nodes, byes included, for ``player_count`` players."""
    return sum(r['total_match_count'] for r in plan_rounds(player_count))
