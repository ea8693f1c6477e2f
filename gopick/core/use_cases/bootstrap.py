"""
Bootstrap use case — build the long-lived components from a Config.

Every entry point (interactive session and one-shot subcommands) goes
through ``build_components`` so they share one cache, one history log
and one resolver configured the same way.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from gopick.core.config.loader import Config
from gopick.core.persistence.history_log import HistoryLog
from gopick.core.persistence.result_cache import CacheError, ResultCache
from gopick.core.reliability.retry import RetryPolicy
from gopick.core.services.fetcher import Fetcher
from gopick.core.services.install_resolver import InstallResolver

logger = logging.getLogger(__name__)


@dataclass
class Components:
    config: Config
    cache: ResultCache
    history: HistoryLog
    resolver: InstallResolver
    fetcher: Fetcher


def build_components(config: Config) -> Components:
    """Construct cache, history, resolver and fetcher.

    Raises:
        CacheError: If the cache directory cannot be created.
        HistoryError: If the history file cannot be created.
    """
    cache = ResultCache(config.cache_dir, config.cache_ttl)
    history = HistoryLog(config.history_file, config.max_history_entries)
    resolver = InstallResolver(
        config.gomodcache_path or Path.home() / "go" / "pkg" / "mod",
        go_binary=config.go_binary,
    )
    fetcher = Fetcher(
        config.base_url,
        retry=RetryPolicy(
            max_attempts=config.max_retries,
            base_delay=config.retry_base_delay,
        ),
        timeout=config.request_timeout,
    )
    return Components(config=config, cache=cache, history=history, resolver=resolver, fetcher=fetcher)


def start_cache_cleanup(cache: ResultCache) -> threading.Thread:
    """Remove expired cache entries on a background thread."""

    def _clean() -> None:
        try:
            removed = cache.clean_expired()
        except CacheError as e:
            logger.warning("Cache cleanup failed: %s", e)
            return
        if removed:
            logger.info("Removed %d expired cache entries", removed)

    thread = threading.Thread(target=_clean, name="gopick-cache-cleanup", daemon=True)
    thread.start()
    return thread
