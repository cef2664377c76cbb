import pytest

from session_keeper.config import Cache, Persist, load_raw_config


def test_cache_settings_read_toml_table():
    settings = Cache({"session_keeper": {"cache": {"max_groups": 10, "max_bytes": 5000}}})

    assert settings.MAX_GROUPS == 10
    assert settings.MAX_BYTES == 5000
    assert settings.bounded_by_bytes is True


def test_cache_settings_fall_back_to_environment(monkeypatch):
    monkeypatch.setenv("GROUPCACHE_MAX_SESSIONS", "7")
    monkeypatch.setenv("GROUPCACHE_GROUP_TTL", "60")

    settings = Cache({})

    assert settings.MAX_SESSIONS == 7
    assert settings.GROUP_TTL == 60.0


def test_auto_clean_interval_defaults_to_prune_interval(monkeypatch):
    monkeypatch.delenv("GROUPCACHE_AUTO_CLEAN_INTERVAL", raising=False)

    settings = Cache({"session_keeper": {"cache": {"prune_interval": 90}}})

    assert settings.AUTO_CLEAN_INTERVAL == 90.0


@pytest.mark.parametrize("key", ["max_sessions", "max_groups", "group_ttl", "prune_interval"])
def test_cache_settings_reject_non_positive_values(key):
    with pytest.raises(ValueError):
        Cache({"session_keeper": {"cache": {key: 0}}})


def test_persist_settings_defaults_and_validation(monkeypatch):
    for name in ("AUTH_MAX_BYTES", "AUTH_PERSIST_ATTEMPTS", "AUTH_BACKOFF_BASE", "AUTH_MAX_FILE_BYTES"):
        monkeypatch.delenv(name, raising=False)

    settings = Persist()

    assert settings.MAX_BYTES == 600 * 1024
    assert settings.ATTEMPTS == 5
    assert settings.BACKOFF_BASE == 0.2

    with pytest.raises(ValueError):
        Persist({"session_keeper": {"persist": {"attempts": 0}}})


def test_load_raw_config_reads_toml(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text("[session_keeper.cache]\nmax_groups = 25\n", encoding="utf-8")

    assert load_raw_config(path) == {"session_keeper": {"cache": {"max_groups": 25}}}

    monkeypatch.setenv("SESSION_KEEPER_CONFIG", str(path))
    assert Cache(load_raw_config()).MAX_GROUPS == 25

    assert load_raw_config(tmp_path / "missing.toml") == {}
