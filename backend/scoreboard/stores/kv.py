import json

from .remote import RemoteStore


class KvStore(RemoteStore):
    """Board stored under one key of a REST key-value service (Upstash style)."""

    name = 'kv'

    def __init__(self, players, rest_url: str, token: str, key: str = 'wordle-scores', **kwargs):
        super().__init__(players, token, **kwargs)
        self.rest_url = rest_url.rstrip('/')
        self.key = key

    def _fetch_document(self):
        res = self.session.get(f'{self.rest_url}/get/{self.key}', headers=self._auth_headers(), timeout=self.timeout)
        res.raise_for_status()
        data = res.json()
        if not isinstance(data, dict):
            raise ValueError('kv response is not an object')
        raw = data.get('result')
        if raw is None:
            return None
        return json.loads(raw) if isinstance(raw, str) else raw

    def _write_document(self, payload: dict):
        res = self.session.post(
            f'{self.rest_url}/set/{self.key}',
            data=json.dumps(payload),
            headers=self._auth_headers(),
            timeout=self.timeout,
        )
        res.raise_for_status()
        return self.key
