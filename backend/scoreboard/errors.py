class ScoreboardError(Exception):
    """Base error; carries the HTTP status the API layer should answer with."""
    status_code = 500
    default_message = 'Server error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'success': False, 'error': self.message}


class InvalidPlayer(ScoreboardError):
    status_code = 400
    default_message = 'Invalid player'


class InvalidChange(ScoreboardError):
    status_code = 400
    default_message = 'Invalid change'


class Unauthorized(ScoreboardError):
    status_code = 401
    default_message = 'Invalid password'


class ScoreConflict(ScoreboardError):
    status_code = 409
    default_message = 'Score changed concurrently, please retry'


class BackendUnavailable(ScoreboardError):
    status_code = 500
    default_message = 'Score storage unavailable'
