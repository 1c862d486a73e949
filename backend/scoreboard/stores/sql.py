from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from scoreboard import db
from scoreboard.errors import BackendUnavailable
from scoreboard.models import PlayerScore, utcnow
from scoreboard.services.scores.board import ScoreBoard, utc_now_iso
from .base import ScoreStore


def _iso(dt) -> str:
    return dt.replace(tzinfo=timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _parse_iso(value):
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (AttributeError, ValueError):
        return utcnow()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class SqlStore(ScoreStore):
    """One row per player in the player_score table.

    Must be used inside an app context. The table is created and the default
    rows seeded on first use.
    """

    name = 'sql'

    def __init__(self, players, logger=None):
        super().__init__(players, logger)
        self._ready = False

    def ensure_ready(self) -> None:
        if self._ready:
            return
        try:
            db.create_all()
            existing = {row.player for row in PlayerScore.query.all()}
            for p in self.players:
                if p not in existing:
                    db.session.add(PlayerScore(player=p, score=0))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise BackendUnavailable('Failed to initialize score table') from exc
        self._ready = True

    def _read_board(self) -> ScoreBoard:
        self.ensure_ready()
        try:
            rows = PlayerScore.query.order_by(PlayerScore.player).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise BackendUnavailable('Failed to fetch scores from database') from exc
        scores = {row.player: row.score for row in rows}
        stamps = [row.last_updated for row in rows if row.last_updated]
        last_updated = _iso(max(stamps)) if stamps else utc_now_iso()
        return ScoreBoard(self.players, scores, last_updated)

    def load(self, strict: bool = False) -> ScoreBoard:
        try:
            return self._read_board()
        except BackendUnavailable as exc:
            if strict:
                raise
            self.logger.warning(f"[sql-load] falling back to default board: {exc.__cause__!r}")
            return self.default_board()

    def save(self, board: ScoreBoard):
        self.ensure_ready()
        try:
            stamp = _parse_iso(board.last_updated)
            updated = 0
            for p in self.players:
                updated += PlayerScore.query.filter_by(player=p).update(
                    {'score': board.get(p), 'last_updated': stamp},
                    synchronize_session=False,
                )
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.logger.error(f"[sql-save] failed: {exc!r}")
            raise BackendUnavailable('Failed to update score') from exc
        return updated

    def compare_and_swap(self, player: str, expected: int, new: int) -> Optional[ScoreBoard]:
        self.ensure_ready()
        try:
            updated = PlayerScore.query.filter_by(player=player, score=expected).update(
                {'score': max(0, int(new)), 'last_updated': utcnow()},
                synchronize_session=False,
            )
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.logger.error(f"[sql-cas] player={player} failed: {exc!r}")
            raise BackendUnavailable('Failed to update score') from exc
        if updated != 1:
            return None
        return self._read_board()
