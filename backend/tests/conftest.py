import json as jsonlib
import os
import sys
import pytest
import requests
from flask import g

# Ensure the backend root (containing the `scoreboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from scoreboard import create_app, db, socketio


PLAYERS = ['raehan', 'omar', 'mahir', 'hadi', 'fawaz']
PASSWORD = 'wordle123'


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    SCORE_STORE = 'memory'
    PLAYERS = PLAYERS
    SCOREBOARD_PASSWORD = PASSWORD
    REQUIRE_PASSWORD = True
    AUTH_TOKEN_TTL_SEC = 3600
    CORS_ORIGINS = '*'


class SqlTestConfig(TestConfig):
    SCORE_STORE = 'sql'


def _isolate_request_user(application):
    # The fixtures hold one app context open, so `g` would be shared by every
    # test-client request; drop Flask-Login's per-request user cache like a
    # real request boundary would.
    @application.teardown_request
    def _drop_cached_user(_exc):
        g.pop('_login_user', None)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    _isolate_request_user(application)
    with application.app_context():
        yield application


@pytest.fixture()
def sql_app():
    application = create_app(SqlTestConfig)
    _isolate_request_user(application)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scoreboard.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sql_client(sql_app):
    return sql_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


# ---- fakes for the HTTP-backed stores ----

class FakeResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError('no JSON body')
        return self._data

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f'{self.status_code} error')


class FakeBlobService:
    """Minimal stand-in for a blob store's list/fetch/put API."""

    api_url = 'https://blob.test'
    files_url = 'https://files.test'

    def __init__(self):
        self.objects = {}
        self.get_calls = 0
        self.put_calls = 0
        self.fail_reads = False
        self.fail_puts = 0

    def get(self, url, params=None, headers=None, timeout=None):
        self.get_calls += 1
        if self.fail_reads:
            raise requests.ConnectionError('blob store unreachable')
        if url == self.api_url:
            prefix = (params or {}).get('prefix', '')
            blobs = [{'pathname': name, 'url': f'{self.files_url}/{name}'}
                     for name in self.objects if name.startswith(prefix)]
            return FakeResponse(200, {'blobs': blobs})
        name = url[len(self.files_url) + 1:]
        if name not in self.objects:
            return FakeResponse(404, {'error': 'not found'})
        return FakeResponse(200, jsonlib.loads(self.objects[name]))

    def put(self, url, data=None, headers=None, timeout=None):
        self.put_calls += 1
        if self.fail_puts:
            self.fail_puts -= 1
            raise requests.ConnectionError('upload failed')
        name = url[len(self.api_url) + 1:]
        self.objects[name] = data
        return FakeResponse(200, {'url': f'{self.files_url}/{name}', 'pathname': name})


class FakeKvService:
    rest_url = 'https://kv.test'

    def __init__(self):
        self.values = {}
        self.fail = False

    def get(self, url, headers=None, timeout=None):
        if self.fail:
            raise requests.ConnectionError('kv unreachable')
        key = url.rsplit('/', 1)[-1]
        return FakeResponse(200, {'result': self.values.get(key)})

    def post(self, url, data=None, headers=None, timeout=None):
        if self.fail:
            raise requests.ConnectionError('kv unreachable')
        key = url.rsplit('/', 1)[-1]
        self.values[key] = data
        return FakeResponse(200, {'result': 'OK'})


@pytest.fixture()
def blob_service():
    return FakeBlobService()


@pytest.fixture()
def kv_service():
    return FakeKvService()


# ---- requests-shaped adapter over the Flask test client ----

class FlaskTestResponse:
    def __init__(self, res):
        self.status_code = res.status_code
        self._res = res

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        data = self._res.get_json(silent=True)
        if data is None:
            raise ValueError('no JSON body')
        return data


class FlaskTestSession:
    """Lets the sync agent talk to the app in-process. Set offline to simulate network loss."""

    base_url = 'http://scoreboard.test'

    def __init__(self, test_client):
        self.test_client = test_client
        self.offline = False
        self.requests = []

    def _path(self, url):
        return url[len(self.base_url):] if url.startswith(self.base_url) else url

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append(('GET', self._path(url)))
        if self.offline:
            raise requests.ConnectionError('offline')
        return FlaskTestResponse(self.test_client.get(self._path(url), query_string=params, headers=headers))

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append(('POST', self._path(url)))
        if self.offline:
            raise requests.ConnectionError('offline')
        return FlaskTestResponse(self.test_client.post(self._path(url), json=json, headers=headers))


@pytest.fixture()
def api_session(client):
    return FlaskTestSession(client)
