"""Board storage backends.

The active backend is chosen by the SCORE_STORE config value and built once
per app by create_store(); request handlers reach it through get_store().
"""
from flask import current_app

from .base import ScoreStore
from .memory import MemoryStore


def create_store(app) -> ScoreStore:
    cfg = app.config
    kind = (cfg.get('SCORE_STORE') or 'memory').lower()
    players = cfg['PLAYERS']
    logger = app.logger
    remote_kwargs = {
        'timeout': float(cfg.get('STORE_HTTP_TIMEOUT_SEC', 5)),
        'logger': logger,
    }

    if kind == 'blob':
        token = cfg.get('BLOB_READ_WRITE_TOKEN')
        if not token:
            logger.warning("[store] blob store selected but BLOB_READ_WRITE_TOKEN is not set; using non-persistent memory store")
            return MemoryStore(players, logger)
        from .blob import BlobStore
        return BlobStore(
            players,
            api_url=cfg['BLOB_API_URL'],
            token=token,
            pathname=cfg.get('BLOB_PATHNAME', 'wordle-scores.json'),
            cache_ttl=float(cfg.get('BLOB_CACHE_TTL_SEC', 30)),
            retry_attempts=int(cfg.get('BLOB_RETRY_ATTEMPTS', 3)),
            retry_base_delay=float(cfg.get('BLOB_RETRY_BASE_DELAY_SEC', 1)),
            **remote_kwargs,
        )

    if kind == 'kv':
        url, token = cfg.get('KV_REST_API_URL'), cfg.get('KV_REST_API_TOKEN')
        if not (url and token):
            logger.warning("[store] kv store selected but KV_REST_API_URL/KV_REST_API_TOKEN are not set; using non-persistent memory store")
            return MemoryStore(players, logger)
        from .kv import KvStore
        return KvStore(players, rest_url=url, token=token, key=cfg.get('KV_KEY', 'wordle-scores'), **remote_kwargs)

    if kind == 'sql':
        from .sql import SqlStore
        return SqlStore(players, logger)

    if kind != 'memory':
        logger.warning(f"[store] unknown SCORE_STORE={kind!r}; using memory store")
    return MemoryStore(players, logger)


def get_store() -> ScoreStore:
    return current_app.extensions['score_store']
