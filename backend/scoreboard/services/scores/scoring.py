from typing import Iterable

from scoreboard.errors import InvalidChange, InvalidPlayer, ScoreConflict
from scoreboard.services.scores.board import ScoreBoard
from scoreboard.stores.base import ScoreStore


class ScoreUpdate:
    def __init__(self, player: str, change: int, old_score: int, new_score: int, board: ScoreBoard):
        self.player = player
        self.change = change
        self.old_score = old_score
        self.new_score = new_score
        self.board = board

    @property
    def message(self) -> str:
        return f"{self.player}'s score updated from {self.old_score} to {self.new_score}"


def validate_update(player, change, players: Iterable[str], max_change: int = 100) -> int:
    """Check a requested update and return the change as an int.

    Whole-number floats such as 5.0 (what JSON encoders in some clients emit)
    are accepted; 1.5, strings and booleans are not.
    """
    if not isinstance(player, str) or player not in set(players):
        raise InvalidPlayer()
    # bool is an int subclass; reject it explicitly
    if isinstance(change, bool):
        raise InvalidChange('Change must be an integer')
    if isinstance(change, float):
        if not change.is_integer():
            raise InvalidChange('Change must be an integer')
        change = int(change)
    elif not isinstance(change, int):
        raise InvalidChange('Change must be an integer')
    if abs(change) > max_change:
        raise InvalidChange(f'Change must be between -{max_change} and {max_change}')
    return change


def apply_delta(store: ScoreStore, player, change, players: Iterable[str], max_change: int = 100, attempts: int = 5) -> ScoreUpdate:
    """Add `change` to one player's score, clamping at zero.

    The write is a compare-and-swap against the score that was read, so two
    concurrent updates for the same player cannot both land on the same
    value; the loser re-reads and tries again, up to `attempts` times.
    """
    change = validate_update(player, change, players, max_change)
    for attempt in range(max(1, attempts)):
        board = store.load(strict=True)
        old_score = board.get(player)
        new_score = max(0, old_score + change)
        updated = store.compare_and_swap(player, old_score, new_score)
        if updated is not None:
            return ScoreUpdate(player, change, old_score, new_score, updated)
        store.logger.info(f"[score-conflict] player={player} expected={old_score} attempt={attempt + 1}")
    raise ScoreConflict()
