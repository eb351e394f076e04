"""
Score submission: turn a pair of reported scores into a declared winner.
"""
from typing import List, Dict, Tuple

from engine.errors import ValidationError
from engine.models import BracketDocument
from engine.progression import validate_declaration, declare_winner

DEFAULT_MAX_SCORE = 13


def determine_score_winner(scores: List[Dict], max_score: int = DEFAULT_MAX_SCORE) -> Tuple[str, Dict[str, int]]:
    """
    Validate two reported scores and pick the winner.

    ``scores`` is a list of two ``{'participant_id', 'score'}`` mappings.
    Returns ``(winner_id, {participant_id: score})``.
    """
    if not isinstance(scores, (list, tuple)) or len(scores) != 2:
        raise ValidationError("Exactly two participant scores are required", field='scores')

    parsed = {}
    for entry in scores:
        if not isinstance(entry, dict) or not entry.get('participant_id'):
            raise ValidationError("Each score needs a participant_id", field='scores')
        score = entry.get('score')
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError("Scores must be whole numbers", field='scores')
        if score < 0:
            raise ValidationError("Scores cannot be negative", field='scores')
        if score > max_score:
            raise ValidationError(f"Scores cannot exceed {max_score}", field='scores')
        parsed[str(entry['participant_id'])] = score

    if len(parsed) != 2:
        raise ValidationError("Scores must be for two different participants", field='scores')

    (id1, score1), (id2, score2) = parsed.items()
    if score1 == score2:
        raise ValidationError("Scores cannot be equal, a match must have a winner", field='scores')

    winner_id = id1 if score1 > score2 else id2
    return winner_id, parsed


def submit_score(bracket: BracketDocument, match_id: str, scores: List[Dict],
                 max_score: int = DEFAULT_MAX_SCORE) -> BracketDocument:
    """Record scores for a ready match and declare the higher scorer the winner."""
    winner_id, by_participant = determine_score_winner(scores, max_score)
    match = validate_declaration(bracket, match_id, winner_id)

    missing = [pid for pid in by_participant if pid not in match.participant_ids()]
    if missing:
        raise ValidationError(f"Participant {missing[0]} is not in match {match_id}", field='scores')

    slot_scores = [by_participant[p.id] for p in match.participants]
    return declare_winner(bracket, match_id, winner_id, scores=slot_scores)
