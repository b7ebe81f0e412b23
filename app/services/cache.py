"""Key/value caching with write timestamps and a fixed TTL."""
import os
import json
import logging
import tempfile
import threading
from typing import Any, Optional

from .time_provider import TimeProvider, get_now

logger = logging.getLogger(__name__)

DEFAULT_TTL = 24 * 60 * 60
HIJRI_CACHE_FILE = 'hijri_cache.json'
NISAB_CACHE_FILE = 'nisab_cache.json'


class MemoryStore:
    """In-process store. Default backend and the one tests use."""

    def __init__(self):
        self._entries: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._entries.get(key)

    def set(self, key: str, entry: dict) -> None:
        # Round-trip through JSON so both stores reject the same values
        self._entries[key] = json.loads(json.dumps(entry))

    def clear(self) -> None:
        self._entries.clear()


class JSONFileStore:
    """One JSON document per cache, rewritten atomically on every save."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read_all(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Cache file {self.path} is not a JSON object")
        return data

    def get(self, key: str) -> Any:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, entry: dict) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except (json.JSONDecodeError, ValueError, IOError):
                logger.warning(f"Discarding unreadable cache file {self.path}")
                data = {}
            data[key] = entry
            self._write_all(data)

    def _write_all(self, data: dict) -> None:
        """Atomic write: temp file then rename."""
        directory = os.path.dirname(self.path) or '.'
        os.makedirs(directory, exist_ok=True)
        payload = json.dumps(data, indent=2)
        fd, temp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                f.write(payload)
            os.replace(temp_path, self.path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def clear(self) -> None:
        with self._lock:
            if os.path.exists(self.path):
                os.unlink(self.path)


def is_entry_valid(entry: Any, ttl: float, now: float) -> bool:
    """Check that an envelope is well formed and younger than ttl."""
    if not isinstance(entry, dict) or 'data' not in entry or 'timestamp' not in entry:
        return False
    try:
        age = now - float(entry['timestamp'])
    except (TypeError, ValueError):
        return False
    return age < ttl


class TTLCache:
    """Named cache whose entries expire a fixed time after they were written.

    Every value is stored as ``{"data": value, "timestamp": written_at}``.
    Reads never raise: a missing, malformed, unreadable or expired entry
    is a miss. Writes never raise either; failures are logged and
    reported through the return value.
    """

    def __init__(
        self,
        name: str,
        ttl: float = DEFAULT_TTL,
        store=None,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.name = name
        self.ttl = ttl
        self.store = store if store is not None else MemoryStore()
        self._time_provider = time_provider

    def _now(self) -> float:
        return get_now(self._time_provider)

    def load(self, key: str, default: Any = None) -> Any:
        try:
            entry = self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache load error ({self.name}/{key}): {e}")
            return default
        if entry is None or not is_entry_valid(entry, self.ttl, self._now()):
            return default
        return entry['data']

    def save(self, key: str, value: Any) -> bool:
        try:
            self.store.set(key, {'data': value, 'timestamp': self._now()})
            return True
        except Exception as e:
            logger.warning(f"Cache save error ({self.name}/{key}): {e}")
            return False

    def clear(self) -> None:
        self.store.clear()


def get_cache_path(data_dir: str, filename: str) -> str:
    return os.path.join(data_dir, filename)


def create_file_cache(
    name: str,
    data_dir: str,
    filename: str,
    ttl: float = DEFAULT_TTL,
    time_provider: Optional[TimeProvider] = None,
) -> TTLCache:
    """Build a TTLCache persisted under data_dir."""
    store = JSONFileStore(get_cache_path(data_dir, filename))
    return TTLCache(name, ttl=ttl, store=store, time_provider=time_provider)
