import json

from .remote import RemoteStore


class BlobStore(RemoteStore):
    """Board stored as a single JSON object in a blob store.

    Listing: GET {api_url}?prefix={pathname} -> {"blobs": [{"pathname", "url"}]}
    Upload:  PUT {api_url}/{pathname} -> {"url": ...}, overwriting the object.
    """

    name = 'blob'

    def __init__(self, players, api_url: str, token: str, pathname: str = 'wordle-scores.json', **kwargs):
        super().__init__(players, token, **kwargs)
        self.api_url = api_url.rstrip('/')
        self.pathname = pathname

    def _find_url(self):
        res = self.session.get(
            self.api_url,
            params={'prefix': self.pathname},
            headers=self._auth_headers(),
            timeout=self.timeout,
        )
        res.raise_for_status()
        listing = res.json()
        if not isinstance(listing, dict):
            raise ValueError('blob listing is not an object')
        blobs = listing.get('blobs') or []
        if not isinstance(blobs, list):
            raise ValueError('blob listing has no blobs array')
        for blob in blobs:
            if isinstance(blob, dict) and blob.get('pathname') == self.pathname:
                return blob.get('url')
        return None

    def _fetch_document(self):
        url = self._find_url()
        if not url:
            self.logger.info(f"[blob-load] no object named {self.pathname}, using defaults")
            return None
        res = self.session.get(url, headers={'Cache-Control': 'no-cache'}, timeout=self.timeout)
        res.raise_for_status()
        return res.json()

    def _write_document(self, payload: dict):
        headers = self._auth_headers()
        headers.update({
            'x-add-random-suffix': '0',
            'x-content-type': 'application/json',
        })
        res = self.session.put(
            f'{self.api_url}/{self.pathname}',
            data=json.dumps(payload, indent=2),
            headers=headers,
            timeout=self.timeout,
        )
        res.raise_for_status()
        data = res.json()
        return data.get('url') if isinstance(data, dict) else None
