"""Tests for configuration loading."""

import pytest

from roomforge.config import CACHE_MAX_ROOMS, ROOM_CACHE_KEY, CacheConfig, SessionConfig


class TestCacheConfig:
    def test_defaults(self):
        config = CacheConfig()
        assert config.storage_key == ROOM_CACHE_KEY == "roguelike_room_cache"
        assert config.version == 1
        assert config.max_age_seconds == 24 * 60 * 60
        assert config.max_rooms == CACHE_MAX_ROOMS == 5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ROOMFORGE_CACHE_KEY", "test_cache")
        monkeypatch.setenv("ROOMFORGE_CACHE_VERSION", "3")
        monkeypatch.setenv("ROOMFORGE_CACHE_MAX_AGE_SECONDS", "60")
        monkeypatch.setenv("ROOMFORGE_CACHE_MAX_ROOMS", "9")

        config = CacheConfig.from_env()
        assert config == CacheConfig(
            storage_key="test_cache", version=3, max_age_seconds=60.0, max_rooms=9
        )

    def test_from_env_without_variables(self, monkeypatch):
        for name in ("KEY", "VERSION", "MAX_AGE_SECONDS", "MAX_ROOMS"):
            monkeypatch.delenv(f"ROOMFORGE_CACHE_{name}", raising=False)
        assert CacheConfig.from_env() == CacheConfig()

    @pytest.mark.parametrize("kwargs", [{"max_rooms": 0}, {"max_age_seconds": 0}])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            CacheConfig(**kwargs).validate()


class TestSessionConfig:
    def test_defaults(self):
        config = SessionConfig()
        assert config.enhancement_timeout == 30.0
        assert config.prefetch
        assert config.cache_dir is None
        assert not config.debug_events

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ROOMFORGE_ENHANCEMENT_TIMEOUT", "2.5")
        monkeypatch.setenv("ROOMFORGE_PREFETCH", "off")
        monkeypatch.setenv("ROOMFORGE_CACHE_DIR", str(tmp_path))
        monkeypatch.setenv("ROOMFORGE_DEBUG_EVENTS", "TRUE")

        config = SessionConfig.from_env()
        assert config.enhancement_timeout == 2.5
        assert not config.prefetch
        assert config.cache_dir == str(tmp_path)
        assert config.debug_events

    def test_validate_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            SessionConfig(enhancement_timeout=0).validate()

    def test_cache_dir_selects_file_store(self, tmp_path):
        from roomforge.session import DungeonSession
        from roomforge.storage import JsonFileStore

        session = DungeonSession(1, config=SessionConfig(cache_dir=str(tmp_path)))
        assert isinstance(session.store, JsonFileStore)
