from __future__ import annotations

from pathlib import Path

import pytest

from tuix import EngineConfig, TemplateEngine


@pytest.fixture(autouse=True)
def _clean_tuix_env(monkeypatch):
    # TUIX_* variables from the developer's shell must not leak into tests
    for name in ("TUIX_CACHE_TTL", "TUIX_CACHE_MAX_ENTRIES", "TUIX_STRICT", "TUIX_DEBUG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def engine():
    eng = TemplateEngine(EngineConfig())
    yield eng
    eng.dispose()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project directory; templates are written by each test."""
    return tmp_path
