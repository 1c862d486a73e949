from datetime import datetime, timezone
from scoreboard import db
from flask_login import UserMixin


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlayerScore(db.Model):
    __tablename__ = 'player_score'
    id = db.Column(db.Integer, primary_key=True)
    player = db.Column(db.String(64), unique=True, nullable=False, index=True)
    score = db.Column(db.Integer, default=0, nullable=False)
    last_updated = db.Column(db.DateTime, default=utcnow, nullable=False)


class SquadMember(UserMixin):
    """Holder of a valid auth token. There are no per-person accounts."""

    def __init__(self, token_id):
        self.id = token_id
