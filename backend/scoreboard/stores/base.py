import logging
from typing import Iterable, Optional

from scoreboard.services.scores.board import ScoreBoard


class ScoreStore:
    """Interface every board backend implements.

    - load(strict=False): non-strict reads fall back to the default board on
      failure, strict reads raise BackendUnavailable
    - save(board): overwrite the whole board, returns a backend handle
    - compare_and_swap(player, expected, new): atomic single-player write,
      returns the updated board or None when the current score != expected
    """

    name = 'base'

    def __init__(self, players: Iterable[str], logger: Optional[logging.Logger] = None):
        self.players = list(players)
        self.logger = logger or logging.getLogger(__name__)

    def default_board(self) -> ScoreBoard:
        return ScoreBoard.default(self.players)

    def load(self, strict: bool = False) -> ScoreBoard:
        raise NotImplementedError

    def save(self, board: ScoreBoard):
        raise NotImplementedError

    def compare_and_swap(self, player: str, expected: int, new: int) -> Optional[ScoreBoard]:
        raise NotImplementedError

    def reset(self) -> ScoreBoard:
        board = self.default_board()
        self.save(board)
        self.logger.info(f"[store-reset] backend={self.name}")
        return board
