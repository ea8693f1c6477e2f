"""
Tests for the search coordinator — debounce tokens and the cache-first
pipeline.
"""

import queue

import pytest

from gopick.core.engine.messages import SearchCompleted, TimerFired
from gopick.core.models.package import CacheEntry, Package
from gopick.core.persistence.result_cache import CacheError, ResultCache
from gopick.core.services.fetcher import FetchError
from gopick.core.services.install_resolver import InstallResolver
from gopick.core.services.search_coordinator import SearchCoordinator
from tests.fakes import FakeGo, ManualTimers, StubFetcher, make_package


class ScriptedCache:
    """Cache whose ``get`` answers are scripted per call."""

    def __init__(self, *answers: CacheEntry | None, fail_set: bool = False):
        self.answers = list(answers)
        self.fail_set = fail_set
        self.stored: dict[str, list[Package]] = {}

    def get(self, query: str) -> CacheEntry | None:
        return self.answers.pop(0) if self.answers else None

    def set(self, query: str, packages: list[Package]) -> CacheEntry:
        if self.fail_set:
            raise CacheError("disk full")
        self.stored[query] = packages
        return CacheEntry(query=query, results=packages)


COBRA = make_package("github.com/spf13/cobra", "1.8.0")
VIPER = make_package("github.com/spf13/viper")


def _drain(outbox: queue.Queue) -> list:
    items = []
    while not outbox.empty():
        items.append(outbox.get_nowait())
    return items


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def outbox() -> queue.Queue:
    return queue.Queue()


class TestResolve:
    def test_cache_hit_skips_fetch(self, cache: ResultCache, resolver: InstallResolver, outbox: queue.Queue):
        cache.set("cobra", [COBRA])
        fetcher = StubFetcher(error="should not be called")
        coordinator = SearchCoordinator(cache, fetcher, resolver, outbox)

        result = coordinator.resolve("cobra")

        assert result.from_cache is True
        assert result.stale is False
        assert [p.import_path for p in result.packages] == ["github.com/spf13/cobra"]
        assert fetcher.queries == []

    def test_cache_hit_annotates_installed(self, cache: ResultCache, resolver: InstallResolver, fake_go: FakeGo, outbox: queue.Queue):
        fake_go.listed.add("github.com/spf13/cobra")
        cache.set("cobra", [COBRA])
        result = SearchCoordinator(cache, StubFetcher(), resolver, outbox).resolve("cobra")
        assert result.packages[0].is_installed is True

    def test_miss_fetches_and_writes_through(self, cache: ResultCache, resolver: InstallResolver, outbox: queue.Queue):
        fetcher = StubFetcher({"spf13": [COBRA, VIPER]})
        coordinator = SearchCoordinator(cache, fetcher, resolver, outbox)

        result = coordinator.resolve("spf13")

        assert result.from_cache is False
        assert [p.name for p in result.packages] == ["cobra", "viper"]
        entry = cache.get("spf13")
        assert entry is not None
        assert [p.name for p in entry.results] == ["cobra", "viper"]

    def test_fetch_error_falls_back_to_cache(self, resolver: InstallResolver, outbox: queue.Queue):
        cache = ScriptedCache(None, CacheEntry(query="cobra", results=[COBRA]))
        coordinator = SearchCoordinator(cache, StubFetcher(error="offline"), resolver, outbox)

        result = coordinator.resolve("cobra")

        assert result.stale is True
        assert result.from_cache is True
        assert [p.name for p in result.packages] == ["cobra"]

    def test_fetch_error_without_cache_raises(self, cache: ResultCache, resolver: InstallResolver, outbox: queue.Queue):
        coordinator = SearchCoordinator(cache, StubFetcher(error="offline"), resolver, outbox)
        with pytest.raises(FetchError, match="offline"):
            coordinator.resolve("cobra")

    def test_cache_write_failure_is_not_fatal(self, resolver: InstallResolver, outbox: queue.Queue):
        cache = ScriptedCache(fail_set=True)
        coordinator = SearchCoordinator(cache, StubFetcher({"cobra": [COBRA]}), resolver, outbox)
        assert [p.name for p in coordinator.resolve("cobra").packages] == ["cobra"]


class TestDebounce:
    def test_query_change_schedules_timer(self, cache, resolver, outbox, timers: ManualTimers):
        coordinator = SearchCoordinator(cache, StubFetcher(), resolver, outbox, debounce=0.3, timer_factory=timers)
        token = coordinator.on_query_changed("cobra")

        assert token == coordinator.current_token
        assert len(timers.live) == 1
        assert timers.live[0].interval == 0.3

    def test_new_query_cancels_pending(self, cache, resolver, outbox, timers: ManualTimers):
        fetcher = StubFetcher({"cob": [], "cobra": [COBRA]})
        coordinator = SearchCoordinator(cache, fetcher, resolver, outbox, timer_factory=timers)

        first = coordinator.on_query_changed("cob")
        second = coordinator.on_query_changed("cobra")
        assert second > first
        assert len(timers.live) == 1

        timers.fire_all()

        assert fetcher.queries == ["cobra"]
        messages = _drain(outbox)
        assert messages[0] == TimerFired(token=second, query="cobra")
        assert isinstance(messages[1], SearchCompleted)
        assert messages[1].token == second
        assert [p.name for p in messages[1].packages] == ["cobra"]

    def test_superseded_timer_does_nothing(self, cache, resolver, outbox, timers: ManualTimers):
        fetcher = StubFetcher({"a": []})
        coordinator = SearchCoordinator(cache, fetcher, resolver, outbox, timer_factory=timers)
        coordinator.on_query_changed("a")
        stale_timer = timers.created[0]
        coordinator.on_query_changed("ab")

        stale_timer.fn()

        assert fetcher.queries == []
        assert outbox.empty()

    def test_empty_query_schedules_nothing(self, cache, resolver, outbox, timers: ManualTimers):
        coordinator = SearchCoordinator(cache, StubFetcher(), resolver, outbox, timer_factory=timers)
        coordinator.on_query_changed("x")
        coordinator.on_query_changed("")
        assert timers.live == []

    def test_fetch_error_reported_as_message(self, cache, resolver, outbox, timers: ManualTimers):
        coordinator = SearchCoordinator(cache, StubFetcher(error="offline"), resolver, outbox, timer_factory=timers)
        token = coordinator.on_query_changed("cobra")
        timers.fire_all()

        completed = _drain(outbox)[-1]
        assert completed.token == token
        assert completed.error == "offline"
        assert completed.packages == []

    def test_close_cancels_and_blocks(self, cache, resolver, outbox, timers: ManualTimers):
        coordinator = SearchCoordinator(cache, StubFetcher({"a": []}), resolver, outbox, timer_factory=timers)
        coordinator.on_query_changed("a")
        pending = timers.created[0]

        coordinator.close()
        pending.fn()
        coordinator.on_query_changed("b")

        assert pending.cancelled
        assert timers.live == []
        assert outbox.empty()
