import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

import requests

from scoreboard.errors import ScoreboardError
from scoreboard.services.scores.board import ScoreBoard
from scoreboard.services.scores.scoring import validate_update
from .cache import LocalCache

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
}

IDLE = 'idle'
LOADING = 'loading'
SUCCESS = 'success'
FALLBACK = 'fallback'


class ServerRejected(Exception):
    def __init__(self, status_code: int, error: str):
        super().__init__(f'{status_code}: {error}')
        self.status_code = status_code
        self.error = error


def _log_notice(title: str, message: str) -> None:
    logger.info(f"[notice] {title}: {message}")


def time_ago(timestamp: str, now: Optional[datetime] = None) -> str:
    """Render an ISO timestamp as 'Just now', '5 minutes ago', '2 days ago'..."""
    then = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    mins = int((now - then).total_seconds() // 60)
    hours = mins // 60
    days = hours // 24
    if mins < 1:
        return 'Just now'
    if mins < 60:
        return f"{mins} minute{'s' if mins != 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    return f"{days} day{'s' if days != 1 else ''} ago"


class ScoreSyncAgent:
    """Keeps a local copy of the board in step with the server.

    One agent per client. At most one score update is in flight at a time;
    extra requests are rejected, or queued and replayed in order when
    queue_updates is set. The server's board always replaces the local one
    wholesale. When the server cannot be reached the local cache is used and
    updates are applied locally until the next successful sync.
    """

    def __init__(self, base_url: str, players: Iterable[str], cache: LocalCache,
                 session: Optional[requests.Session] = None, password: Optional[str] = None,
                 notify: Optional[Callable[[str, str], None]] = None,
                 debounce_sec: float = 0.5, inactivity_sec: float = 60.0,
                 queue_updates: bool = False, queue_delay_sec: float = 0.3,
                 max_change: int = 100, timeout: float = 10.0, clock=time.monotonic, sleep=time.sleep):
        self.base_url = base_url.rstrip('/')
        self.players = list(players)
        self.cache = cache
        self.session = session or requests.Session()
        self.password = password
        self.notify = notify or _log_notice
        self.debounce_sec = debounce_sec
        self.inactivity_sec = inactivity_sec
        self.queue_updates = queue_updates
        self.queue_delay_sec = queue_delay_sec
        self.max_change = max_change
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

        self.board = ScoreBoard.default(self.players)
        self.state = IDLE
        self.last_outcome: Optional[str] = None
        self.busy = False
        self.token: Optional[str] = None
        self._lock = threading.Lock()
        self._queue: deque = deque()
        self._epoch = 0
        self._last_update_at: Optional[float] = None
        self._last_activity = clock()
        self._refresh_stop: Optional[threading.Event] = None
        self._refresh_thread: Optional[threading.Thread] = None

    # ---- helpers ----
    def _url(self, path: str) -> str:
        return f'{self.base_url}{path}'

    def _auth_headers(self):
        return {'Authorization': f'Bearer {self.token}'} if self.token else {}

    @staticmethod
    def _parse(res) -> dict:
        try:
            data = res.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise ServerRejected(res.status_code, 'Malformed server response')
        if not res.ok or not data.get('success'):
            raise ServerRejected(res.status_code, data.get('error') or f'HTTP error! status: {res.status_code}')
        return data

    def _finish(self, outcome: str) -> None:
        self.last_outcome = outcome
        self.state = IDLE

    def record_activity(self) -> None:
        self._last_activity = self._clock()

    def cancel_pending(self) -> None:
        """Forget queued updates and ignore the outcome of in-flight requests."""
        with self._lock:
            self._epoch += 1
            self._queue.clear()

    # ---- auth ----
    def authenticate(self, password: Optional[str] = None) -> bool:
        """Exchange the password for a bearer token.

        Returns False when the server turns the password down. Network errors
        are raised as requests.RequestException, since an unreachable server
        says nothing about the password.
        """
        password = password if password is not None else self.password
        try:
            res = self.session.post(self._url('/api/auth'), json={'password': password}, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning(f"[auth] server unreachable: {exc!r}")
            raise
        try:
            data = self._parse(res)
        except ServerRejected as exc:
            logger.warning(f"[auth] failed: {exc!r}")
            self.notify('Access Denied', 'Incorrect password.')
            return False
        self.token = data.get('token')
        self.password = password
        return True

    # ---- reads ----
    def load_scores(self) -> bool:
        with self._lock:
            epoch = self._epoch
        self.state = LOADING
        try:
            res = self.session.get(
                self._url('/api/scores'),
                params={'t': int(time.time() * 1000)},
                headers=NO_CACHE_HEADERS,
                timeout=self.timeout,
            )
            board = ScoreBoard.from_dict(self._parse(res), self.players)
        except (requests.RequestException, ServerRejected, ValueError) as exc:
            if epoch != self._epoch:
                self._finish('ignored')
                return False
            logger.error(f"[load] error: {exc!r}")
            cached = self.cache.load()
            if cached is not None:
                self.board = cached
            self.notify('Offline Mode', 'Cannot connect to server. Using local data.')
            self._finish(FALLBACK)
            return False
        if epoch != self._epoch:
            self._finish('ignored')
            return False
        self.board = board
        self.cache.save(board)
        self._finish(SUCCESS)
        return True

    # ---- writes ----
    def update_score(self, player: str, change: int) -> str:
        """Send one update. Returns the outcome:
        'invalid', 'debounced', 'busy', 'queued', 'success', 'offline', 'rejected' or 'ignored'.

        Unknown players and out-of-range changes are turned away before any
        request is made, so they can never reach the offline fallback.
        """
        try:
            change = validate_update(player, change, self.players, self.max_change)
        except ScoreboardError as exc:
            logger.warning(f"[update] invalid update player={player!r} change={change!r}: {exc.message}")
            self.notify('Invalid Update', exc.message)
            return 'invalid'
        now = self._clock()
        with self._lock:
            if self._last_update_at is not None and now - self._last_update_at < self.debounce_sec:
                self.notify('Too Fast', 'Please wait a moment between updates...')
                return 'debounced'
            if self.busy:
                if self.queue_updates:
                    self._queue.append((player, change))
                    return 'queued'
                self.notify('Please Wait', 'Another update is in progress...')
                return 'busy'
            self.busy = True
            self._last_update_at = now

        try:
            outcome = self._send_update(player, change)
            while True:
                with self._lock:
                    if not self._queue:
                        break
                    next_player, next_change = self._queue.popleft()
                self._sleep(self.queue_delay_sec)
                self._send_update(next_player, next_change)
        finally:
            with self._lock:
                self.busy = False
            self.record_activity()
        return outcome

    def _post_update(self, player: str, change: int):
        body = {'player': player, 'change': change}
        if not self.token and self.password:
            body['password'] = self.password
        headers = {'Cache-Control': 'no-cache'}
        headers.update(self._auth_headers())
        return self.session.post(self._url('/api/scores'), json=body, headers=headers, timeout=self.timeout)

    def _send_update(self, player: str, change: int) -> str:
        with self._lock:
            epoch = self._epoch
        self.state = LOADING
        fallback_score = max(0, self.board.get(player) + change)
        try:
            res = self._post_update(player, change)
            if res.status_code == 401 and self.token and self.password:
                # token expired; log in again once
                self.token = None
                if self.authenticate():
                    res = self._post_update(player, change)
            data = self._parse(res)
            board = ScoreBoard.from_dict(data, self.players)
        except ServerRejected as exc:
            if epoch != self._epoch:
                self._finish('ignored')
                return 'ignored'
            if exc.status_code >= 500:
                return self._apply_offline(player, fallback_score, exc)
            logger.warning(f"[update] rejected: {exc!r}")
            self.notify('Update Failed', exc.error)
            self._finish('rejected')
            return 'rejected'
        except (requests.RequestException, ValueError) as exc:
            if epoch != self._epoch:
                self._finish('ignored')
                return 'ignored'
            return self._apply_offline(player, fallback_score, exc)

        if epoch != self._epoch:
            self._finish('ignored')
            return 'ignored'
        self.board = board
        self.cache.save(board)
        action = 'increased' if change > 0 else 'decreased'
        self.notify('Score Updated!', f"{player.capitalize()}'s score {action} successfully!")
        self._finish(SUCCESS)
        return 'success'

    def _apply_offline(self, player: str, new_score: int, exc: Exception) -> str:
        logger.error(f"[update] error, applying locally: {exc!r}")
        self.board.set(player, new_score)
        self.cache.save(self.board)
        self.notify('Offline Update', 'Score updated locally. Changes will sync when online.')
        self._finish(FALLBACK)
        return 'offline'

    # ---- background refresh ----
    def tick(self) -> bool:
        """Reload if no update is in flight and the user has been idle long enough."""
        if self.busy or self._clock() - self._last_activity <= self.inactivity_sec:
            return False
        logger.debug("[refresh] auto-refresh triggered")
        self.load_scores()
        return True

    def start_auto_refresh(self, interval: float = 30.0) -> None:
        self.stop_auto_refresh()
        stop = threading.Event()

        def _loop():
            while not stop.wait(interval):
                self.tick()

        self._refresh_stop = stop
        self._refresh_thread = threading.Thread(target=_loop, name='score-auto-refresh', daemon=True)
        self._refresh_thread.start()

    def stop_auto_refresh(self) -> None:
        if self._refresh_stop is not None:
            self._refresh_stop.set()
            self._refresh_stop = None
            self._refresh_thread = None

    # ---- display ----
    def leaderboard(self) -> List[Tuple[int, str, int]]:
        ordered = sorted(self.players, key=lambda p: -self.board.get(p))
        return [(i + 1, p.capitalize(), self.board.get(p)) for i, p in enumerate(ordered)]
