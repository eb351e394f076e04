"""
Match state transitions and winner propagation.

A match moves waiting -> ready -> completed and never back. When a match
completes, its winner is written into the slot of the downstream match that
lists it as a source, and any structural bye that creates is resolved
immediately, which can cascade through several rounds.
"""
import logging
from typing import List, Optional

from engine.errors import NotFoundError, InvalidStateError, InvalidArgumentError
from engine.models import BracketDocument, Match, MatchStatus

logger = logging.getLogger(__name__)


def update_match_status(match: Match):
    """Recompute status and display name of a match that is not completed."""
    if match.is_completed:
        return
    if len(match.participants) == 2 and len(match.real_players) == 2:
        match.status = MatchStatus.READY
    else:
        match.status = MatchStatus.WAITING
    match.refresh_display_name()
    logger.debug("Match %s is %s: %s", match.id, match.status.value, match.display_name)


def _source_matches(bracket: BracketDocument, match: Match) -> List[Optional[Match]]:
    sources = []
    for source_id in match.source_match_ids:
        found = bracket.find_match(source_id)
        sources.append(found[1] if found else None)
    return sources


def is_structural_bye(bracket: BracketDocument, match: Match) -> bool:
    """
    True when a waiting match holds one player whose opponent cannot exist.

    Every source match must be completed, and the empty slot must have no
    source match feeding it: the opponent is missing because of the bracket
    shape, not because an earlier match is still to be played.
    """
    if match.status != MatchStatus.WAITING or len(match.real_players) != 1:
        return False
    sources = _source_matches(bracket, match)
    if not sources or any(s is None or not s.is_completed for s in sources):
        return False
    empty_slots = [i for i, p in enumerate(match.participants) if p is None]
    return all(i >= len(match.source_match_ids) for i in empty_slots)


def _complete_as_bye(match: Match):
    player = match.real_players[0]
    match.participants = [player]
    match.is_bye = True
    match.status = MatchStatus.COMPLETED
    match.winner_id = player.id
    match.refresh_display_name()
    logger.info("Auto-advancing %s in match %s, no opponent", player.name, match.id)


def advance(bracket: BracketDocument, match: Match):
    """
    Push the winner of a completed ``match`` into its downstream match.

    Safe to call repeatedly: the winner is written to the slot matching the
    position of ``match.id`` in the downstream ``source_match_ids``, and a
    downstream match that already completed is left alone.
    """
    winner = match.winner
    if not match.is_completed or winner is None:
        return

    found = bracket.find_match(match.id)
    if found is None:
        return
    round_index = found[0]
    if round_index + 1 >= len(bracket.rounds):
        return

    for downstream in bracket.rounds[round_index + 1].matches:
        if match.id not in downstream.source_match_ids:
            continue
        if downstream.is_completed:
            continue

        slot = downstream.source_match_ids.index(match.id)
        while len(downstream.participants) < 2:
            downstream.participants.append(None)
        downstream.participants[slot] = winner
        logger.debug("Placed %s in slot %d of match %s", winner.name, slot, downstream.id)

        update_match_status(downstream)

        if is_structural_bye(bracket, downstream):
            _complete_as_bye(downstream)
            advance(bracket, downstream)


def resolve_byes(bracket: BracketDocument) -> BracketDocument:
    """Propagate every completed match, round by round, until nothing moves."""
    for rnd in bracket.rounds:
        for match in rnd.matches:
            if match.is_completed:
                advance(bracket, match)
    return bracket


def validate_declaration(bracket: BracketDocument, match_id: str, winner_id: str) -> Match:
    """Check every precondition of ``declare_winner`` without touching the bracket."""
    found = bracket.find_match(match_id)
    if found is None:
        raise NotFoundError("Match", match_id)
    match = found[1]

    if match.status == MatchStatus.COMPLETED:
        raise InvalidStateError(f"Match {match_id} is already completed", state=match.status.value)
    if match.status != MatchStatus.READY:
        raise InvalidStateError(f"Match {match_id} is waiting for participants", state=match.status.value)

    if winner_id not in match.participant_ids():
        raise InvalidArgumentError(
            f"Invalid winner {winner_id} - not a participant in match {match_id}",
            argument='winnerId',
        )
    return match


def declare_winner(bracket: BracketDocument, match_id: str, winner_id: str,
                   scores: Optional[List[int]] = None) -> BracketDocument:
    """
    Declare ``winner_id`` the winner of a ready match and advance the bracket.

    Raises NotFoundError for an unknown match, InvalidStateError when the
    match is not ready, InvalidArgumentError when the winner is not one of
    its two participants. Nothing is modified when an error is raised.
    """
    winner_id = str(winner_id)
    match = validate_declaration(bracket, match_id, winner_id)

    match.winner_id = winner_id
    match.status = MatchStatus.COMPLETED
    if scores is not None:
        match.scores = list(scores)
    match.refresh_display_name()
    logger.info("Match %s won by %s", match.id, match.winner.name)

    advance(bracket, match)
    return bracket
