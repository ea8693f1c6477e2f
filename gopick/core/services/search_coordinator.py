"""
Search coordinator — debounced, cache-first search.

Every query change cancels the pending timer and issues a new request
token. Only when a timer survives the debounce interval does its
search run (on the timer thread), against the query captured when it
was scheduled. Results go to the controller queue tagged with the
token; the controller drops any result whose token is not the latest.

Pipeline for one search::

    cache hit   → annotate installed status → result (from_cache)
    cache miss  → fetch ─ ok    → annotate → write through → result
                        └ error → cache fallback (stale) or raise
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from gopick.core.engine.messages import SearchCompleted, TimerFired
from gopick.core.models.package import Package
from gopick.core.persistence.result_cache import CacheError, ResultCache
from gopick.core.services.fetcher import FetchError, Fetcher
from gopick.core.services.install_resolver import InstallResolver

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _thread_timer(interval: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, fn)
    timer.daemon = True
    timer.start()
    return timer


@dataclass
class SearchResult:
    packages: list[Package] = field(default_factory=list)
    from_cache: bool = False
    stale: bool = False     # served from cache because the fetch failed


class SearchCoordinator:
    """Turns query edits into at most one search per quiet period."""

    def __init__(
        self,
        cache: ResultCache,
        fetcher: Fetcher,
        resolver: InstallResolver,
        outbox: queue.Queue,
        *,
        debounce: float = 0.3,
        timer_factory: TimerFactory = _thread_timer,
    ):
        self._cache = cache
        self._fetcher = fetcher
        self._resolver = resolver
        self._outbox = outbox
        self._debounce = debounce
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._timer: Any = None
        self._token = 0
        self._closed = False

    @property
    def current_token(self) -> int:
        with self._lock:
            return self._token

    # ── Debounce ────────────────────────────────────────────────

    def on_query_changed(self, query: str) -> int:
        """Supersede any pending search with ``query``. Returns the new token.

        An empty query schedules nothing; the caller clears its results.
        """
        with self._lock:
            self._cancel_timer()
            self._token += 1
            token = self._token
            if self._closed or not query:
                return token
            self._timer = self._timer_factory(self._debounce, lambda: self._fire(token, query))
            return token

    def close(self) -> None:
        """Cancel the pending timer; results of in-flight searches are dropped."""
        with self._lock:
            self._closed = True
            self._cancel_timer()
            self._token += 1

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _is_current(self, token: int) -> bool:
        with self._lock:
            return not self._closed and token == self._token

    def _fire(self, token: int, query: str) -> None:
        if not self._is_current(token):
            return

        self._outbox.put(TimerFired(token=token, query=query))

        try:
            result = self.resolve(query)
        except FetchError as e:
            message = SearchCompleted(token=token, query=query, error=str(e))
        else:
            message = SearchCompleted(
                token=token,
                query=query,
                packages=result.packages,
                from_cache=result.from_cache,
                stale=result.stale,
            )

        if self._is_current(token):
            self._outbox.put(message)
        else:
            logger.debug("Dropping superseded results for %r", query)

    # ── Pipeline ────────────────────────────────────────────────

    def resolve(self, query: str) -> SearchResult:
        """Run one search through cache, network and installed-status annotation.

        Raises:
            FetchError: If the fetch failed and nothing is cached for ``query``.
        """
        cached = self._cache.get(query)
        if cached is not None:
            logger.debug("Cache hit for %r", query)
            return SearchResult(
                packages=self._resolver.mark_installed_packages(cached.results),
                from_cache=True,
            )

        try:
            packages = self._fetcher.search(query)
        except FetchError as e:
            cached = self._cache.get(query)
            if cached is None:
                raise
            logger.warning("Search for %r failed, using cached results: %s", query, e)
            return SearchResult(
                packages=self._resolver.mark_installed_packages(cached.results),
                from_cache=True,
                stale=True,
            )

        packages = self._resolver.mark_installed_packages(packages)
        try:
            self._cache.set(query, packages)
        except CacheError as e:
            logger.warning("Could not cache results for %r: %s", query, e)

        return SearchResult(packages=packages)
