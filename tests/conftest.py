"""
Shared test fixtures and configuration.

Nothing here touches the network or needs a Go toolchain: HTTP and
subprocess boundaries are replaced with the fakes in ``tests/fakes.py``.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from gopick.core.persistence.history_log import HistoryLog
from gopick.core.persistence.result_cache import ResultCache
from gopick.core.services.install_resolver import InstallResolver
from tests.fakes import FakeClock, FakeGo


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path: Path) -> ResultCache:
    return ResultCache(tmp_path / "cache", timedelta(days=7))


@pytest.fixture
def history(tmp_path: Path, clock: FakeClock) -> HistoryLog:
    return HistoryLog(tmp_path / "history" / ".gopick_history", clock=clock)


@pytest.fixture
def fake_go() -> FakeGo:
    return FakeGo()


@pytest.fixture
def gomodcache(tmp_path: Path) -> Path:
    path = tmp_path / "gomodcache"
    path.mkdir()
    return path


@pytest.fixture
def resolver(gomodcache: Path, fake_go: FakeGo) -> InstallResolver:
    return InstallResolver(gomodcache, run=fake_go.run, stream=fake_go.stream)
