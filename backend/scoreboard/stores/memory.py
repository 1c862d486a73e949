import threading
from typing import Optional

from scoreboard.services.scores.board import ScoreBoard
from .base import ScoreStore


class MemoryStore(ScoreStore):
    """Process-local board. Lost on restart."""

    name = 'memory'

    def __init__(self, players, logger=None):
        super().__init__(players, logger)
        self._lock = threading.Lock()
        self._board = self.default_board()

    def load(self, strict: bool = False) -> ScoreBoard:
        with self._lock:
            return self._board.copy()

    def save(self, board: ScoreBoard):
        with self._lock:
            self._board = ScoreBoard(self.players, board.scores, board.last_updated)
        return 'memory'

    def compare_and_swap(self, player: str, expected: int, new: int) -> Optional[ScoreBoard]:
        with self._lock:
            if self._board.get(player) != expected:
                return None
            self._board.set(player, new)
            return self._board.copy()
