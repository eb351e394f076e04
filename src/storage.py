"""
YAML-backed storage for bracket documents, one directory per event.

Every mutation runs its read-modify-write under a per-event file lock, so two
results submitted at once for the same event are applied one after the other.
Different events use different locks and never wait on each other.
"""
import os
import re
import logging
import yaml
from filelock import FileLock

from engine.builder import build_bracket
from engine.errors import ValidationError, NotFoundError
from engine.models import Player, BracketDocument
from engine.progression import declare_winner
from engine.scoring import submit_score, DEFAULT_MAX_SCORE

logger = logging.getLogger(__name__)

EVENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


class BracketStore:
    def __init__(self, data_dir, lock_timeout=10):
        self.data_dir = data_dir
        self.lock_timeout = lock_timeout

    def _event_dir(self, event_id: str) -> str:
        if not event_id or not EVENT_ID_PATTERN.match(event_id):
            raise ValidationError(f"Invalid event id: {event_id!r}", field='event_id')
        return os.path.join(self.data_dir, 'events', event_id)

    def _path(self, event_id: str, filename: str) -> str:
        return os.path.join(self._event_dir(event_id), filename)

    def lock(self, event_id: str) -> FileLock:
        """File lock guarding every read-modify-write of one event."""
        event_dir = self._event_dir(event_id)
        os.makedirs(event_dir, exist_ok=True)
        return FileLock(os.path.join(event_dir, '.lock'), timeout=self.lock_timeout)

    def load_participants(self, event_id: str) -> list:
        """Load the registered players of an event."""
        path = self._path(event_id, 'participants.yaml')
        if not os.path.exists(path):
            return []
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return []
        return [Player.from_dict(p) for p in data]

    def save_participants(self, event_id: str, players: list):
        path = self._path(event_id, 'participants.yaml')
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump([p.to_dict() for p in players], f, default_flow_style=False, sort_keys=False)

    def load_bracket(self, event_id: str):
        """Load the stored bracket of an event, or None if none was generated."""
        path = self._path(event_id, 'bracket.yaml')
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return None
        return BracketDocument.from_list(data)

    def save_bracket(self, event_id: str, bracket: BracketDocument):
        path = self._path(event_id, 'bracket.yaml')
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp_path = path + '.tmp'
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                yaml.dump(bracket.to_list(), f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def generate(self, event_id: str, players=None, shuffle=None) -> BracketDocument:
        """
        Generate and store the bracket of an event.

        Returns the stored bracket untouched when one already exists. Placeholder
        brackets for fewer than two players are returned but never stored.
        """
        with self.lock(event_id):
            existing = self.load_bracket(event_id)
            if existing is not None and not existing.is_empty():
                logger.info("Returning existing bracket for event %s", event_id)
                return existing

            if players is None:
                players = self.load_participants(event_id)
            bracket = build_bracket(players, existing=existing, shuffle=shuffle)
            if bracket.is_empty():
                return bracket

            self.save_bracket(event_id, bracket)
            logger.info("Saved bracket for event %s with %d rounds", event_id, len(bracket.rounds))
            return bracket

    def _load_for_update(self, event_id: str) -> BracketDocument:
        bracket = self.load_bracket(event_id)
        if bracket is None or bracket.is_empty():
            raise NotFoundError("Bracket for event", event_id)
        return bracket

    def declare_winner(self, event_id: str, match_id: str, winner_id: str) -> BracketDocument:
        with self.lock(event_id):
            bracket = self._load_for_update(event_id)
            declare_winner(bracket, match_id, winner_id)
            self.save_bracket(event_id, bracket)
            return bracket

    def submit_score(self, event_id: str, match_id: str, scores: list,
                     max_score: int = DEFAULT_MAX_SCORE) -> BracketDocument:
        with self.lock(event_id):
            bracket = self._load_for_update(event_id)
            submit_score(bracket, match_id, scores, max_score=max_score)
            self.save_bracket(event_id, bracket)
            return bracket
