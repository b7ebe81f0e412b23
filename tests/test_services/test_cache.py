"""Tests for cache service."""
import json
import os

import pytest

from app.services import cache
from app.services.time_provider import TimeProvider


@pytest.fixture
def clock():
    return TimeProvider(frozen_time=1_000_000.0)


@pytest.fixture
def file_cache(tmp_path, clock):
    return cache.create_file_cache('nisab', str(tmp_path), cache.NISAB_CACHE_FILE, ttl=100, time_provider=clock)


def test_get_cache_path(tmp_path):
    """get_cache_path joins the data dir and file name."""
    path = cache.get_cache_path(str(tmp_path), cache.HIJRI_CACHE_FILE)
    assert path == os.path.join(str(tmp_path), 'hijri_cache.json')


def test_load_missing_key_returns_default(clock):
    """A key that was never written is a miss."""
    c = cache.TTLCache('test', time_provider=clock)
    assert c.load('2023') is None
    assert c.load('2023', default=0) == 0


def test_save_then_load(clock):
    """A saved value is returned unchanged before expiry."""
    c = cache.TTLCache('test', ttl=100, time_provider=clock)
    assert c.save('01/2023', {'month': 6, 'year': 1444}) is True
    assert c.load('01/2023') == {'month': 6, 'year': 1444}


def test_entry_valid_just_before_ttl(clock):
    """An entry read at T + TTL - epsilon is still served."""
    c = cache.TTLCache('test', ttl=100, time_provider=clock)
    c.save('2023', 5000.0)
    clock.advance(99.999)
    assert c.load('2023') == 5000.0


def test_entry_expired_at_ttl(clock):
    """An entry read at exactly T + TTL is a miss."""
    c = cache.TTLCache('test', ttl=100, time_provider=clock)
    c.save('2023', 5000.0)
    clock.advance(100)
    assert c.load('2023') is None


def test_entry_expired_after_ttl(clock):
    """An entry read at T + TTL + epsilon is a miss."""
    c = cache.TTLCache('test', ttl=100, time_provider=clock)
    c.save('2023', 5000.0)
    clock.advance(100.001)
    assert c.load('2023') is None


def test_overwrite_refreshes_timestamp(clock):
    """Saving again restarts the TTL."""
    c = cache.TTLCache('test', ttl=100, time_provider=clock)
    c.save('2023', 1.0)
    clock.advance(80)
    c.save('2023', 2.0)
    clock.advance(80)
    assert c.load('2023') == 2.0


@pytest.mark.parametrize('entry', [
    'not-a-dict',
    {'data': 1},
    {'timestamp': 1_000_000.0},
    {'data': 1, 'timestamp': 'yesterday'},
    {'data': 1, 'timestamp': None},
])
def test_malformed_entry_is_miss(clock, entry):
    """Malformed envelopes are treated as absent."""
    store = cache.MemoryStore()
    store._entries['key'] = entry
    c = cache.TTLCache('test', store=store, time_provider=clock)
    assert c.load('key') is None


def test_is_entry_valid():
    """is_entry_valid compares age against ttl."""
    entry = {'data': 1, 'timestamp': 10.0}
    assert cache.is_entry_valid(entry, ttl=5, now=14.9) is True
    assert cache.is_entry_valid(entry, ttl=5, now=15.0) is False


def test_save_unserializable_value_returns_false(clock):
    """A value that cannot be stored is reported, not raised."""
    c = cache.TTLCache('test', time_provider=clock)
    assert c.save('key', object()) is False
    assert c.load('key') is None


def test_clear_removes_entries(clock):
    c = cache.TTLCache('test', time_provider=clock)
    c.save('a', 1)
    c.clear()
    assert c.load('a') is None


class TestJSONFileStore:
    """Tests for the file-backed store."""

    def test_write_and_read_back(self, file_cache, tmp_path):
        """Saved values persist as {data, timestamp} envelopes on disk."""
        file_cache.save('2023', 5000.0)

        with open(tmp_path / 'nisab_cache.json') as f:
            on_disk = json.load(f)
        assert on_disk == {'2023': {'data': 5000.0, 'timestamp': 1_000_000.0}}
        assert file_cache.load('2023') == 5000.0

    def test_second_cache_instance_sees_saved_values(self, file_cache, tmp_path, clock):
        """Values survive process restarts (a new cache on the same file)."""
        file_cache.save('2023', 5000.0)
        reopened = cache.create_file_cache('nisab', str(tmp_path), cache.NISAB_CACHE_FILE, ttl=100, time_provider=clock)
        assert reopened.load('2023') == 5000.0

    def test_no_temp_files_left_behind(self, file_cache, tmp_path):
        """Atomic writes leave only the cache file."""
        file_cache.save('2023', 1.0)
        file_cache.save('2024', 2.0)
        assert sorted(os.listdir(tmp_path)) == ['nisab_cache.json']

    def test_corrupt_file_is_miss(self, file_cache, tmp_path):
        """An unreadable file yields misses instead of errors."""
        (tmp_path / 'nisab_cache.json').write_text('{not json')
        assert file_cache.load('2023') is None

    def test_corrupt_file_is_replaced_on_save(self, file_cache, tmp_path):
        """Saving over a corrupt file starts a fresh document."""
        (tmp_path / 'nisab_cache.json').write_text('[1, 2, 3]')
        assert file_cache.save('2023', 5000.0) is True
        assert file_cache.load('2023') == 5000.0

    def test_clear_deletes_file(self, file_cache, tmp_path):
        file_cache.save('2023', 1.0)
        file_cache.clear()
        assert not (tmp_path / 'nisab_cache.json').exists()
        assert file_cache.load('2023') is None

    def test_creates_missing_directory(self, tmp_path, clock):
        """The data directory is created on first write."""
        nested = tmp_path / 'nested' / 'dir'
        c = cache.create_file_cache('hijri', str(nested), cache.HIJRI_CACHE_FILE, time_provider=clock)
        assert c.save('01/2023', {'month': 6, 'year': 1444}) is True
        assert (nested / 'hijri_cache.json').exists()


def test_default_clock_is_used(frozen_time):
    """Without an explicit provider the cache uses the default clock."""
    c = cache.TTLCache('test', ttl=10)
    c.save('k', 'v')
    frozen_time.advance(10)
    assert c.load('k') is None
