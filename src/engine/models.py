"""
Bracket document data model: players, matches, rounds and the document itself.

The serialized form (``BracketDocument.to_list``) is what crosses the storage
and HTTP boundary: an ordered list of ``{"roundName", "matches"}`` objects.
"""
from enum import Enum
from typing import List, Dict, Optional, Tuple

from engine.errors import ValidationError


TBD_ID = 'TBD'
TBD_NAME = 'TBD'


class MatchStatus(str, Enum):
    """Match lifecycle states. Transitions only move forward."""

    WAITING = "waiting"  # Fewer than two real players present
    READY = "ready"  # Two real players, no winner yet
    COMPLETED = "completed"  # Winner declared or bye resolved


class BracketStatus(str, Enum):
    """Whole-bracket lifecycle states."""

    SETUP = "setup"  # Built, no played match completed yet
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # Final has a winner


class Player:
    def __init__(self, id, name, avatar_ref=None):
        self.id = str(id)
        self.name = name
        self.avatar_ref = avatar_ref

    def to_dict(self) -> Dict:
        data = {'id': self.id, 'name': self.name}
        if self.avatar_ref:
            data['avatarRef'] = self.avatar_ref
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Player':
        if not isinstance(data, dict) or not data.get('id'):
            raise ValidationError("Player entry must be a mapping with an 'id'", field='id')
        player_id = str(data['id'])
        if player_id == TBD_ID:
            raise ValidationError(f"'{TBD_ID}' is reserved for empty slots", field='id')
        return cls(player_id, data.get('name') or player_id, data.get('avatarRef'))

    def __eq__(self, other):
        if not isinstance(other, Player):
            return NotImplemented
        return (self.id, self.name, self.avatar_ref) == (other.id, other.name, other.avatar_ref)

    def __repr__(self):
        return f"Player(id={self.id}, name={self.name})"


class Match:
    """
    One node of the bracket tree.

    ``participants`` holds up to two slots; a slot is a ``Player`` or ``None``
    for a TBD placeholder. Slot ``i`` is only ever filled from the winner of
    ``source_match_ids[i]``.
    """

    def __init__(self, id: str, round_index: int, slot_index: int,
                 participants: Optional[List[Optional[Player]]] = None,
                 source_match_ids: Optional[List[str]] = None,
                 status: MatchStatus = MatchStatus.WAITING,
                 winner_id: Optional[str] = None,
                 is_bye: bool = False,
                 scores: Optional[List[int]] = None):
        self.id = id
        self.round_index = round_index
        self.slot_index = slot_index
        self.participants = participants if participants is not None else [None, None]
        self.source_match_ids = source_match_ids if source_match_ids is not None else []
        self.status = MatchStatus(status)
        self.winner_id = winner_id
        # True when the winner arrived without a played match
        self.is_bye = is_bye
        self.scores = scores
        self.display_name = self.compute_display_name()

    @property
    def real_players(self) -> List[Player]:
        return [p for p in self.participants if p is not None]

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    @property
    def winner(self) -> Optional[Player]:
        if self.winner_id is None:
            return None
        for player in self.real_players:
            if player.id == self.winner_id:
                return player
        return None

    def participant_ids(self) -> List[str]:
        return [p.id for p in self.real_players]

    def compute_display_name(self) -> str:
        if self.is_bye and len(self.real_players) == 1:
            return f"{self.real_players[0].name} (Bye)"
        names = [p.name if p is not None else TBD_NAME for p in self.participants]
        while len(names) < 2:
            names.append(TBD_NAME)
        return f"{names[0]} vs {names[1]}"

    def refresh_display_name(self):
        self.display_name = self.compute_display_name()

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'roundIndex': self.round_index,
            'slotIndex': self.slot_index,
            'participants': [
                p.to_dict() if p is not None else {'id': TBD_ID, 'name': TBD_NAME}
                for p in self.participants
            ],
            'sourceMatchIds': list(self.source_match_ids),
            'status': self.status.value,
            'winnerId': self.winner_id,
            'displayName': self.display_name,
            'isBye': self.is_bye,
            'scores': list(self.scores) if self.scores is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        try:
            participants = [
                None if slot.get('id') == TBD_ID else Player.from_dict(slot)
                for slot in data.get('participants', [])
            ]
            match = cls(
                id=data['id'],
                round_index=int(data['roundIndex']),
                slot_index=int(data['slotIndex']),
                participants=participants,
                source_match_ids=list(data.get('sourceMatchIds') or []),
                status=MatchStatus(data.get('status', MatchStatus.WAITING.value)),
                winner_id=data.get('winnerId'),
                is_bye=bool(data.get('isBye', False)),
                scores=data.get('scores'),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"Malformed match entry: {e}", field='matches')
        if match.winner_id is not None and match.winner_id not in match.participant_ids():
            raise ValidationError(f"Match {match.id} winner is not one of its participants", field='winnerId')
        return match

    def __repr__(self):
        return f"Match(id={self.id}, name={self.display_name}, status={self.status.value})"


class Round:
    def __init__(self, name: str, matches: Optional[List[Match]] = None):
        self.name = name
        self.matches = matches if matches is not None else []

    def to_dict(self) -> Dict:
        return {'roundName': self.name, 'matches': [m.to_dict() for m in self.matches]}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Round':
        if not isinstance(data, dict) or 'roundName' not in data:
            raise ValidationError("Round entry must be a mapping with a 'roundName'", field='roundName')
        return cls(data['roundName'], [Match.from_dict(m) for m in data.get('matches') or []])

    def __repr__(self):
        return f"Round(name={self.name}, matches={len(self.matches)})"


class BracketDocument:
    """Ordered rounds of a single-elimination bracket."""

    def __init__(self, rounds: Optional[List[Round]] = None):
        self.rounds = rounds if rounds is not None else []

    def is_empty(self) -> bool:
        """True for a missing bracket or a placeholder with no matches."""
        return not any(r.matches for r in self.rounds)

    def all_matches(self) -> List[Match]:
        return [m for r in self.rounds for m in r.matches]

    def find_match(self, match_id: str) -> Optional[Tuple[int, Match]]:
        """Return ``(round_index, match)`` for ``match_id`` or None."""
        for round_index, rnd in enumerate(self.rounds):
            for match in rnd.matches:
                if match.id == match_id:
                    return round_index, match
        return None

    def matches_in_round(self, round_index: int) -> List[Match]:
        if round_index < 0 or round_index >= len(self.rounds):
            return []
        return list(self.rounds[round_index].matches)

    def playable_matches(self) -> List[Match]:
        return [m for m in self.all_matches() if m.status == MatchStatus.READY]

    @property
    def final_match(self) -> Optional[Match]:
        if self.is_empty():
            return None
        return self.rounds[-1].matches[0]

    @property
    def champion(self) -> Optional[Player]:
        final = self.final_match
        if final is None or not final.is_completed:
            return None
        return final.winner

    @property
    def status(self) -> BracketStatus:
        final = self.final_match
        if final is not None and final.is_completed:
            return BracketStatus.COMPLETED
        if any(m.is_completed and not m.is_bye for m in self.all_matches()):
            return BracketStatus.IN_PROGRESS
        return BracketStatus.SETUP

    @property
    def current_round(self) -> int:
        for round_index, rnd in enumerate(self.rounds):
            if any(not m.is_completed for m in rnd.matches):
                return round_index
        return max(len(self.rounds) - 1, 0)

    def to_list(self) -> List[Dict]:
        return [r.to_dict() for r in self.rounds]

    @classmethod
    def from_list(cls, data) -> 'BracketDocument':
        if data is None:
            return cls()
        if not isinstance(data, list):
            raise ValidationError("Bracket must be a list of rounds", field='bracket')
        return cls([Round.from_dict(r) for r in data])

    def __eq__(self, other):
        if not isinstance(other, BracketDocument):
            return NotImplemented
        return self.to_list() == other.to_list()

    def __repr__(self):
        return f"BracketDocument(rounds={[r.name for r in self.rounds]})"
