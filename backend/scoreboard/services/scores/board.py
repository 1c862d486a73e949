from datetime import datetime, timezone
from typing import Dict, Iterable, Optional


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _coerce_score(value) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


class ScoreBoard:
    """Scores for every known player plus a last-updated timestamp.

    Every player passed at construction is always present and no score is
    ever negative; unknown keys found in stored data are dropped.
    """

    def __init__(self, players: Iterable[str], scores: Optional[Dict[str, int]] = None, last_updated: Optional[str] = None):
        self.players = list(players)
        scores = scores or {}
        self.scores = {p: _coerce_score(scores.get(p, 0)) for p in self.players}
        self.last_updated = last_updated or utc_now_iso()

    @classmethod
    def default(cls, players: Iterable[str]) -> 'ScoreBoard':
        return cls(players)

    @classmethod
    def from_dict(cls, data, players: Iterable[str]) -> 'ScoreBoard':
        if not isinstance(data, dict):
            raise ValueError('board payload must be an object')
        scores = data.get('scores')
        if not isinstance(scores, dict):
            raise ValueError('board payload has no scores object')
        return cls(players, scores, data.get('lastUpdated'))

    def get(self, player: str) -> int:
        return self.scores.get(player) or 0

    def set(self, player: str, score: int) -> None:
        self.scores[player] = max(0, int(score))
        self.touch()

    def touch(self) -> None:
        self.last_updated = utc_now_iso()

    def copy(self) -> 'ScoreBoard':
        return ScoreBoard(self.players, dict(self.scores), self.last_updated)

    def to_dict(self):
        return {
            'scores': dict(self.scores),
            'lastUpdated': self.last_updated,
        }

    def __eq__(self, other):
        if not isinstance(other, ScoreBoard):
            return NotImplemented
        return self.scores == other.scores and self.last_updated == other.last_updated

    def __repr__(self):
        return f'ScoreBoard({self.scores!r}, last_updated={self.last_updated!r})'
