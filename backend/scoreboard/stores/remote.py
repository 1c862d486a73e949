import threading
import time
from typing import Optional

import requests

from scoreboard.errors import BackendUnavailable
from scoreboard.services.scores.board import ScoreBoard
from .base import ScoreStore


class RemoteStore(ScoreStore):
    """Board kept as one JSON document behind an HTTP API.

    Subclasses implement _fetch_document() (None when absent) and
    _write_document(payload) -> handle. The remote side offers no conditional
    write, so every write (save, reset, compare_and_swap) goes through one
    process lock and compare_and_swap re-reads the document before writing.
    """

    def __init__(self, players, token: str, session: Optional[requests.Session] = None, timeout: float = 5.0,
                 cache_ttl: float = 0.0, retry_attempts: int = 1, retry_base_delay: float = 0.0,
                 logger=None, clock=time.monotonic, sleep=time.sleep):
        super().__init__(players, logger)
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_base_delay = retry_base_delay
        self._clock = clock
        self._sleep = sleep
        self._write_lock = threading.RLock()
        self._cache_lock = threading.Lock()
        self._cached: Optional[ScoreBoard] = None
        self._cached_at = 0.0

    def _auth_headers(self):
        return {'Authorization': f'Bearer {self.token}'}

    def _fetch_document(self):
        raise NotImplementedError

    def _write_document(self, payload: dict):
        raise NotImplementedError

    # ---- cache ----
    def _get_cached(self) -> Optional[ScoreBoard]:
        if self.cache_ttl <= 0:
            return None
        with self._cache_lock:
            if self._cached is None or self._clock() - self._cached_at >= self.cache_ttl:
                return None
            return self._cached.copy()

    def _set_cached(self, board: ScoreBoard) -> None:
        if self.cache_ttl <= 0:
            return
        with self._cache_lock:
            self._cached = board.copy()
            self._cached_at = self._clock()

    def invalidate_cache(self) -> None:
        with self._cache_lock:
            self._cached = None

    # ---- reads ----
    def _read_board(self) -> ScoreBoard:
        try:
            document = self._fetch_document()
            if document is None:
                return self.default_board()
            return ScoreBoard.from_dict(document, self.players)
        except (requests.RequestException, ValueError) as exc:
            raise BackendUnavailable(f'Failed to read scores from {self.name} store') from exc

    def load(self, strict: bool = False) -> ScoreBoard:
        if not strict:
            cached = self._get_cached()
            if cached is not None:
                return cached
        try:
            board = self._read_board()
        except BackendUnavailable as exc:
            if strict:
                raise
            self.logger.warning(f"[{self.name}-load] falling back to default board: {exc.__cause__!r}")
            return self.default_board()
        self._set_cached(board)
        return board

    # ---- writes ----
    def _write_with_retry(self, payload: dict):
        last_exc = None
        for attempt in range(self.retry_attempts):
            try:
                return self._write_document(payload)
            except requests.RequestException as exc:
                last_exc = exc
                if attempt == self.retry_attempts - 1:
                    break
                delay = self.retry_base_delay * (2 ** attempt)
                self.logger.warning(f"[{self.name}-save] attempt {attempt + 1}/{self.retry_attempts} failed, retrying in {delay}s: {exc!r}")
                self._sleep(delay)
        self.logger.error(f"[{self.name}-save] giving up after {self.retry_attempts} attempt(s): {last_exc!r}")
        raise BackendUnavailable(f'Failed to save scores to {self.name} store') from last_exc

    def save(self, board: ScoreBoard):
        board = ScoreBoard(self.players, board.scores, board.last_updated)
        with self._write_lock:
            handle = self._write_with_retry(board.to_dict())
            self._set_cached(board)
        self.logger.info(f"[{self.name}-save] saved scores={board.scores} handle={handle}")
        return handle

    def compare_and_swap(self, player: str, expected: int, new: int) -> Optional[ScoreBoard]:
        with self._write_lock:
            board = self._read_board()
            if board.get(player) != expected:
                return None
            board.set(player, new)
            self.save(board)
            return board.copy()
