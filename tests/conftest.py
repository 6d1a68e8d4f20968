"""
Shared fixtures: an in-memory redis stand-in, a fake GeoIP reader and an
application wired to a temporary SQLite database.
"""

import json
import threading
from types import SimpleNamespace

import pytest
import geoip2.errors
from redis.exceptions import ConnectionError as RedisConnectionError

from config_manager import ConfigManager
from ingest_service.geoip import GeoIPResolver
from ingest_service.storage import create_engine


VALID_PAGE_ID = "c" + "a1b2c3d4e5f6g7h8i9j0k1l2"
CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.6099.129 Safari/537.36"
)
BOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


def _parse_bound(value):
    """Parse a redis score bound into (number, exclusive)."""
    if isinstance(value, (int, float)):
        return float(value), False
    text = str(value)
    exclusive = text.startswith("(")
    if exclusive:
        text = text[1:]
    if text in ("-inf", "+inf", "inf"):
        return float(text), exclusive
    return float(text), exclusive


def _in_range(score, low, high):
    low_value, low_exclusive = low
    high_value, high_exclusive = high
    above = score > low_value if low_exclusive else score >= low_value
    below = score < high_value if high_exclusive else score <= high_value
    return above and below


class FakeRedis:
    """Thread-safe subset of the redis client used by the collector.

    ``now`` drives key expiry; set ``fail = True`` to make every command raise
    a connection error.
    """

    def __init__(self):
        self._data = {}
        self._expiry = {}
        self._lock = threading.RLock()
        self.now = 1_700_000_000.0
        self.fail = False
        self.commands = []

    # -- internals ---------------------------------------------------------

    def _check(self, name):
        if self.fail:
            raise RedisConnectionError("Connection refused")
        self.commands.append(name)

    def _purge(self, key):
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self.now:
            self._data.pop(key, None)
            self._expiry.pop(key, None)

    def _get(self, key, default_factory=None):
        self._purge(key)
        if key not in self._data and default_factory is not None:
            self._data[key] = default_factory()
        return self._data.get(key)

    def advance(self, seconds):
        self.now += seconds

    def ttl(self, key):
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return -2
            deadline = self._expiry.get(key)
            return -1 if deadline is None else int(deadline - self.now)

    # -- commands ----------------------------------------------------------

    def ping(self):
        self._check("ping")
        return True

    def set(self, key, value, nx=False, ex=None):
        self._check("set")
        with self._lock:
            self._purge(key)
            if nx and key in self._data:
                return None
            self._data[key] = str(value)
            if ex is not None:
                self._expiry[key] = self.now + ex
            else:
                self._expiry.pop(key, None)
            return True

    def get(self, key):
        self._check("get")
        with self._lock:
            value = self._get(key)
            return value if isinstance(value, str) else None

    def exists(self, key):
        self._check("exists")
        with self._lock:
            return 1 if self._get(key) is not None else 0

    def expire(self, key, seconds):
        self._check("expire")
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return False
            self._expiry[key] = self.now + seconds
            return True

    def hsetnx(self, key, field, value):
        self._check("hsetnx")
        with self._lock:
            mapping = self._get(key, dict)
            if field in mapping:
                return 0
            mapping[field] = str(value)
            return 1

    def hincrby(self, key, field, amount=1):
        self._check("hincrby")
        with self._lock:
            mapping = self._get(key, dict)
            mapping[field] = str(int(mapping.get(field, 0)) + int(amount))
            return int(mapping[field])

    def hgetall(self, key):
        self._check("hgetall")
        with self._lock:
            return dict(self._get(key) or {})

    def zadd(self, key, mapping, gt=False):
        self._check("zadd")
        with self._lock:
            zset = self._get(key, dict)
            added = 0
            for member, score in mapping.items():
                score = float(score)
                if member not in zset:
                    zset[member] = score
                    added += 1
                elif not gt or score > zset[member]:
                    zset[member] = score
            return added

    def zscore(self, key, member):
        self._check("zscore")
        with self._lock:
            return (self._get(key) or {}).get(member)

    def zrange(self, key, start, end, withscores=False):
        self._check("zrange")
        with self._lock:
            items = sorted((self._get(key) or {}).items(), key=lambda item: (item[1], item[0]))
            end = len(items) if end == -1 else end + 1
            items = items[start:end]
            return items if withscores else [member for member, _ in items]

    def zremrangebyscore(self, key, low, high):
        self._check("zremrangebyscore")
        with self._lock:
            zset = self._get(key) or {}
            bounds = (_parse_bound(low), _parse_bound(high))
            doomed = [member for member, score in zset.items() if _in_range(score, *bounds)]
            for member in doomed:
                del zset[member]
            return len(doomed)

    def zcount(self, key, low, high):
        self._check("zcount")
        with self._lock:
            bounds = (_parse_bound(low), _parse_bound(high))
            return sum(1 for score in (self._get(key) or {}).values() if _in_range(score, *bounds))

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    """Queues commands and runs them under the client lock on ``execute``."""

    def __init__(self, client):
        self._client = client
        self._queue = []

    def __getattr__(self, name):
        command = getattr(self._client, name)

        def queue(*args, **kwargs):
            self._queue.append((command, args, kwargs))
            return self

        return queue

    def execute(self):
        with self._client._lock:
            results = [command(*args, **kwargs) for command, args, kwargs in self._queue]
        self._queue = []
        return results


class FakeCountryReader:
    """Stand-in for ``geoip2.database.Reader`` with a fixed IP table."""

    def __init__(self, table=None, error=None):
        self.table = table if table is not None else {"8.8.8.8": "US", "81.2.69.142": "GB"}
        self.error = error
        self.closed = False

    def country(self, ip):
        if self.error is not None:
            raise self.error
        code = self.table.get(ip)
        if code is None:
            raise geoip2.errors.AddressNotFoundError(f"The address {ip} is not in the database.")
        return SimpleNamespace(
            country=SimpleNamespace(iso_code=code),
            registered_country=SimpleNamespace(iso_code=code),
        )

    def close(self):
        self.closed = True


def make_pageview(**overrides):
    """A valid pageview payload dict."""
    payload = {
        "page_id": VALID_PAGE_ID,
        "added_iso": "2025-01-15T10:30:00.000Z",
        "session_id": "session-abc-123",
        "hostname": "franksblog.nl",
        "path": "/blog/post",
        "document_title": "A post",
        "document_referrer": "https://www.google.com/search?q=test",
        "device_type": "desktop",
        "is_internal_referrer": False,
        "duration_seconds": 12,
        "scrolled_percentage": 40,
        "visibility_changes": 1,
        "viewport_width": 1280,
        "viewport_height": 800,
        "language": "en-US",
        "timezone": "Europe/Amsterdam",
        "utm_source": "newsletter",
    }
    payload.update(overrides)
    return payload


def page_id(n):
    """Distinct valid CUIDs for tests inserting several rows."""
    return "c" + f"{n:024d}"


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_reader():
    return FakeCountryReader()


@pytest.fixture
def geoip(fake_reader):
    return GeoIPResolver(fake_reader)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Config file pointing the durable store at a temporary SQLite database."""
    for name in ("APP_ENV", "DASHBOARD_TOKEN", "ALLOWED_ORIGINS", "DATABASE_URL",
                 "REDIS_URL", "GEOIP_DB_PATH", "GEOIP_REQUIRED", "DATA_RETENTION_MONTHS"):
        monkeypatch.delenv(name, raising=False)

    path = tmp_path / "collector_config.json"
    path.write_text(json.dumps({
        "app": {"environment": "production", "dashboard_token": None},
        "cors": {"allowed_origins": ["https://franksblog.nl"]},
        "geoip": {"database_path": str(tmp_path / "missing.mmdb"), "required": False},
        "database": {"url": f"sqlite:///{tmp_path / 'pageviews.db'}", "max_retries": 0},
    }))
    return path


@pytest.fixture
def engine(config_file):
    config = ConfigManager(str(config_file)).get_database_config()
    engine = create_engine(config.url)
    yield engine
    engine.dispose()


@pytest.fixture
def app(config_file, fake_redis, geoip, engine):
    from app.main import create_app

    flask_app = create_app(
        config_manager=ConfigManager(str(config_file)),
        redis_client=fake_redis,
        geoip=geoip,
        engine=engine,
    )
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
