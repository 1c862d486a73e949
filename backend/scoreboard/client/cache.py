import json
import logging
import os
from typing import Iterable, Optional

from scoreboard.services.scores.board import ScoreBoard

logger = logging.getLogger(__name__)


class LocalCache:
    """Best-effort JSON mirror of the last known board.

    Nothing ties it to server state; it is overwritten on every successful
    sync and read only when the server cannot be reached.
    """

    def __init__(self, path: str, players: Iterable[str]):
        self.path = path
        self.players = list(players)

    def load(self) -> Optional[ScoreBoard]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return ScoreBoard.from_dict(json.load(f), self.players)
        except (OSError, ValueError) as exc:
            logger.error(f"[cache] could not read {self.path}: {exc!r}")
            return None

    def save(self, board: ScoreBoard) -> None:
        try:
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(board.to_dict(), f)
        except OSError as exc:
            logger.error(f"[cache] could not write {self.path}: {exc!r}")
