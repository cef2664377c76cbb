import os, sys
from pathlib import Path

import pytest

# Add src/ to sys.path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

# Keep a developer's local config.toml out of the test run
os.environ.setdefault("SESSION_KEEPER_CONFIG", str(Path(__file__).resolve().parent / "missing.toml"))

from session_keeper.config import Cache, Persist  # noqa: E402


@pytest.fixture
def cache_settings():
    """Build cache settings from keyword overrides of the ``[session_keeper.cache]`` table."""

    def _make(**overrides):
        return Cache({"session_keeper": {"cache": overrides}})

    return _make


@pytest.fixture
def persist_settings():
    def _make(**overrides):
        overrides.setdefault("backoff_base", 0)
        return Persist({"session_keeper": {"persist": overrides}})

    return _make
