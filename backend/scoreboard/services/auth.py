import secrets
from typing import Optional

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from scoreboard import bcrypt
from scoreboard.models import SquadMember

TOKEN_SALT = 'scoreboard-auth'


def check_password(candidate) -> bool:
    if not isinstance(candidate, str) or not candidate:
        return False
    pw_hash = current_app.config['SCOREBOARD_PASSWORD_HASH']
    return bcrypt.check_password_hash(pw_hash, candidate)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token() -> str:
    return _serializer().dumps({'tid': secrets.token_hex(8)})


def verify_token(token) -> Optional[SquadMember]:
    if not token:
        return None
    max_age = int(current_app.config.get('AUTH_TOKEN_TTL_SEC', 3600))
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("[auth] expired token rejected")
        return None
    except BadSignature:
        return None
    return SquadMember(data.get('tid'))


def member_from_request(req) -> Optional[SquadMember]:
    header = req.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return verify_token(header[len('Bearer '):].strip())
