import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///scoreboard.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Which backend holds the board: memory, kv, blob, sql
    SCORE_STORE = os.environ.get('SCORE_STORE', 'memory')
    PLAYERS = [p.strip() for p in os.environ.get('SCOREBOARD_PLAYERS', 'raehan,omar,mahir,hadi,fawaz').split(',') if p.strip()]
    MAX_SCORE_CHANGE = int(os.environ.get('MAX_SCORE_CHANGE', '100'))
    # Shared secret for mutating calls
    SCOREBOARD_PASSWORD = os.environ.get('SCOREBOARD_PASSWORD', 'wordle123')
    REQUIRE_PASSWORD = os.environ.get('REQUIRE_PASSWORD', '1') not in ('0', 'false', 'False')
    AUTH_TOKEN_TTL_SEC = int(os.environ.get('AUTH_TOKEN_TTL_SEC', '3600'))
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Blob object store
    BLOB_API_URL = os.environ.get('BLOB_API_URL', 'https://blob.vercel-storage.com')
    BLOB_READ_WRITE_TOKEN = os.environ.get('BLOB_READ_WRITE_TOKEN')
    BLOB_PATHNAME = os.environ.get('BLOB_PATHNAME', 'wordle-scores.json')
    BLOB_CACHE_TTL_SEC = float(os.environ.get('BLOB_CACHE_TTL_SEC', '30'))
    BLOB_RETRY_ATTEMPTS = int(os.environ.get('BLOB_RETRY_ATTEMPTS', '3'))
    BLOB_RETRY_BASE_DELAY_SEC = float(os.environ.get('BLOB_RETRY_BASE_DELAY_SEC', '1'))
    # Key-value REST store
    KV_REST_API_URL = os.environ.get('KV_REST_API_URL')
    KV_REST_API_TOKEN = os.environ.get('KV_REST_API_TOKEN')
    KV_KEY = os.environ.get('KV_KEY', 'wordle-scores')
    # Outbound HTTP timeout for remote stores (sec)
    STORE_HTTP_TIMEOUT_SEC = float(os.environ.get('STORE_HTTP_TIMEOUT_SEC', '5'))
    # Compare-and-swap attempts before giving up with a conflict
    UPDATE_ATTEMPTS = int(os.environ.get('UPDATE_ATTEMPTS', '5'))
    ENVIRONMENT = os.environ.get('FLASK_ENV') or os.environ.get('NODE_ENV') or 'development'
