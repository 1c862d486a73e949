import json
import threading

import pytest

from conftest import PLAYERS, FakeBlobService, FakeKvService, FakeResponse, SqlTestConfig, TestConfig
from scoreboard import create_app
from scoreboard.errors import BackendUnavailable
from scoreboard.services.scores.board import ScoreBoard
from scoreboard.stores.blob import BlobStore
from scoreboard.stores.kv import KvStore
from scoreboard.stores.memory import MemoryStore
from scoreboard.stores.sql import SqlStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _blob_store(service, clock=None, sleeps=None, **kwargs):
    kwargs.setdefault('cache_ttl', 30)
    kwargs.setdefault('retry_attempts', 3)
    kwargs.setdefault('retry_base_delay', 1)
    return BlobStore(
        PLAYERS,
        api_url=service.api_url,
        token='tok',
        session=service,
        clock=clock or FakeClock(),
        sleep=(sleeps.append if sleeps is not None else (lambda s: None)),
        **kwargs,
    )


def _kv_store(service):
    return KvStore(PLAYERS, rest_url=service.rest_url, token='tok', session=service)


# ---- behaviour shared by every backend ----

@pytest.fixture(params=['memory', 'blob', 'kv', 'sql'])
def any_store(request):
    if request.param == 'memory':
        yield MemoryStore(PLAYERS)
    elif request.param == 'blob':
        yield _blob_store(FakeBlobService(), cache_ttl=0)
    elif request.param == 'kv':
        yield _kv_store(FakeKvService())
    else:
        app = request.getfixturevalue('sql_app')
        yield SqlStore(PLAYERS, app.logger)


def test_fresh_store_loads_default_board(any_store):
    board = any_store.load()
    assert board.scores == {p: 0 for p in PLAYERS}


def test_save_then_load_round_trip(any_store):
    board = ScoreBoard(PLAYERS, {'raehan': 4, 'omar': 9})
    any_store.save(board)
    assert any_store.load() == board


def test_consecutive_loads_are_identical(any_store):
    any_store.save(ScoreBoard(PLAYERS, {'mahir': 2}))
    assert any_store.load() == any_store.load()


def test_compare_and_swap(any_store):
    any_store.save(ScoreBoard(PLAYERS, {'hadi': 3}))
    assert any_store.compare_and_swap('hadi', 2, 10) is None
    assert any_store.load().get('hadi') == 3
    updated = any_store.compare_and_swap('hadi', 3, 4)
    assert updated.get('hadi') == 4
    assert any_store.load().get('hadi') == 4


def test_reset(any_store):
    any_store.save(ScoreBoard(PLAYERS, {'fawaz': 8}))
    board = any_store.reset()
    assert board.scores == {p: 0 for p in PLAYERS}
    assert any_store.load().scores == {p: 0 for p in PLAYERS}


# ---- blob specifics ----

def test_blob_persisted_layout(blob_service):
    store = _blob_store(blob_service)
    url = store.save(ScoreBoard(PLAYERS, {'raehan': 1}))
    assert url == 'https://files.test/wordle-scores.json'
    stored = json.loads(blob_service.objects['wordle-scores.json'])
    assert set(stored) == {'scores', 'lastUpdated'}
    assert stored['scores']['raehan'] == 1


def test_blob_read_failure_degrades_to_default(blob_service):
    store = _blob_store(blob_service, cache_ttl=0)
    store.save(ScoreBoard(PLAYERS, {'raehan': 6}))
    blob_service.fail_reads = True
    assert store.load().scores == {p: 0 for p in PLAYERS}
    with pytest.raises(BackendUnavailable):
        store.load(strict=True)


def test_blob_corrupt_object_degrades_to_default(blob_service):
    blob_service.objects['wordle-scores.json'] = json.dumps({'nothing': 'here'})
    store = _blob_store(blob_service, cache_ttl=0)
    assert store.load().scores == {p: 0 for p in PLAYERS}


def test_blob_cache_serves_reads_within_ttl(blob_service):
    clock = FakeClock()
    store = _blob_store(blob_service, clock=clock)
    store.load()
    calls = blob_service.get_calls
    clock.now += 10
    store.load()
    assert blob_service.get_calls == calls
    clock.now += 25
    store.load()
    assert blob_service.get_calls > calls


def test_blob_cache_updated_on_save(blob_service):
    store = _blob_store(blob_service)
    store.load()
    store.save(ScoreBoard(PLAYERS, {'omar': 12}))
    assert store.load().get('omar') == 12


def test_blob_upload_retries_with_backoff(blob_service):
    sleeps = []
    store = _blob_store(blob_service, sleeps=sleeps)
    blob_service.fail_puts = 2
    store.save(ScoreBoard(PLAYERS, {'mahir': 3}))
    assert blob_service.put_calls == 3
    assert sleeps == [1, 2]
    assert json.loads(blob_service.objects['wordle-scores.json'])['scores']['mahir'] == 3


def test_blob_upload_gives_up_after_three_attempts(blob_service):
    sleeps = []
    store = _blob_store(blob_service, sleeps=sleeps)
    blob_service.fail_puts = 5
    with pytest.raises(BackendUnavailable):
        store.save(ScoreBoard(PLAYERS, {'mahir': 3}))
    assert blob_service.put_calls == 3
    assert sleeps == [1, 2]


def test_blob_cas_reads_past_the_cache(blob_service):
    store = _blob_store(blob_service)
    store.load()
    # another process writes behind our cache
    other = _blob_store(blob_service)
    other.save(ScoreBoard(PLAYERS, {'raehan': 5}))
    assert store.compare_and_swap('raehan', 0, 1) is None
    assert store.compare_and_swap('raehan', 5, 6).get('raehan') == 6


# ---- kv specifics ----

def test_kv_unreachable_degrades_to_default(kv_service):
    store = _kv_store(kv_service)
    store.save(ScoreBoard(PLAYERS, {'omar': 2}))
    kv_service.fail = True
    assert store.load().get('omar') == 0
    with pytest.raises(BackendUnavailable):
        store.compare_and_swap('omar', 2, 3)


# ---- documents of the wrong shape ----

class CannedSession:
    """Answers every GET with the same JSON body."""

    def __init__(self, body):
        self.body = body
        self.gets = 0

    def get(self, url, params=None, headers=None, timeout=None):
        self.gets += 1
        return FakeResponse(200, self.body)


@pytest.mark.parametrize('body', [
    ['unexpected'],
    'just a string',
    42,
    {'result': json.dumps([1, 2, 3])},
    {'result': ['not', 'a', 'board']},
])
def test_kv_non_object_document_degrades_to_default(body):
    store = KvStore(PLAYERS, rest_url='https://kv.test', token='tok', session=CannedSession(body))
    assert store.load().scores == {p: 0 for p in PLAYERS}
    with pytest.raises(BackendUnavailable):
        store.load(strict=True)


@pytest.mark.parametrize('body', [
    ['unexpected'],
    {'blobs': 'nope'},
    {'blobs': ['wordle-scores.json']},
])
def test_blob_malformed_listing_degrades_to_default(body):
    session = CannedSession(body)
    store = BlobStore(PLAYERS, api_url='https://blob.test', token='tok', session=session)
    assert store.load().scores == {p: 0 for p in PLAYERS}
    assert session.gets == 1


def test_blob_malformed_listing_fails_strict_reads():
    store = BlobStore(PLAYERS, api_url='https://blob.test', token='tok', session=CannedSession(['unexpected']))
    with pytest.raises(BackendUnavailable):
        store.load(strict=True)


def test_blob_object_that_is_a_list_degrades_to_default(blob_service):
    blob_service.objects['wordle-scores.json'] = json.dumps([1, 2, 3])
    store = _blob_store(blob_service, cache_ttl=0)
    assert store.load().scores == {p: 0 for p in PLAYERS}
    with pytest.raises(BackendUnavailable):
        store.load(strict=True)


# ---- writes share one lock ----

def test_remote_save_and_reset_wait_for_the_write_lock(blob_service):
    store = _blob_store(blob_service)
    done = threading.Event()

    def _reset():
        store.reset()
        done.set()

    with store._write_lock:
        worker = threading.Thread(target=_reset)
        worker.start()
        # a compare_and_swap holding the lock must not be overwritten mid-flight
        assert not done.wait(0.1)
        assert blob_service.put_calls == 0
    assert done.wait(2)
    worker.join(2)
    assert blob_service.put_calls == 1


def test_remote_compare_and_swap_still_saves_under_the_lock(blob_service):
    store = _blob_store(blob_service)
    assert store.compare_and_swap('omar', 0, 3).get('omar') == 3
    assert json.loads(blob_service.objects['wordle-scores.json'])['scores']['omar'] == 3


# ---- backend selection ----

def test_create_store_selection(blob_service):
    class BlobConfig(TestConfig):
        SCORE_STORE = 'blob'
        BLOB_READ_WRITE_TOKEN = 'tok'

    class BlobNoTokenConfig(TestConfig):
        SCORE_STORE = 'blob'
        BLOB_READ_WRITE_TOKEN = None

    class KvNoCredsConfig(TestConfig):
        SCORE_STORE = 'kv'
        KV_REST_API_URL = None
        KV_REST_API_TOKEN = None

    assert isinstance(create_app(TestConfig).extensions['score_store'], MemoryStore)
    assert isinstance(create_app(SqlTestConfig).extensions['score_store'], SqlStore)
    store = create_app(BlobConfig).extensions['score_store']
    assert isinstance(store, BlobStore)
    assert store.cache_ttl == 30
    assert store.retry_attempts == 3
    assert isinstance(create_app(BlobNoTokenConfig).extensions['score_store'], MemoryStore)
    assert isinstance(create_app(KvNoCredsConfig).extensions['score_store'], MemoryStore)


def test_sql_store_seeds_rows_once(sql_app):
    from scoreboard.models import PlayerScore

    store = SqlStore(PLAYERS, sql_app.logger)
    store.load()
    store.load()
    assert PlayerScore.query.count() == len(PLAYERS)
