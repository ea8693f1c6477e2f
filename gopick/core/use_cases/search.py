"""
Search use case — one-shot searches and package lookups for the CLI.

Runs the same cache-first pipeline the interactive session uses, minus
the debounce.
"""

from __future__ import annotations

import queue
from dataclasses import dataclass, field

from gopick.core.models.package import Package
from gopick.core.services.fetcher import FetchError
from gopick.core.services.search_coordinator import SearchCoordinator
from gopick.core.use_cases.bootstrap import Components


@dataclass
class SearchOutcome:
    query: str
    packages: list[Package] = field(default_factory=list)
    from_cache: bool = False
    stale: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"query": self.query, "error": self.error}
        return {
            "query": self.query,
            "from_cache": self.from_cache,
            "stale": self.stale,
            "packages": [_package_dict(p) for p in self.packages],
        }


@dataclass
class PackageInfo:
    package: Package | None = None
    url: str = ""
    error: str | None = None

    def to_dict(self) -> dict:
        if self.package is None:
            return {"url": self.url, "error": self.error}
        return {"url": self.url, **_package_dict(self.package)}


def _package_dict(pkg: Package) -> dict:
    return {**pkg.model_dump(), "is_installed": pkg.is_installed}


def search_packages(components: Components, query: str, *, use_cache: bool = True) -> SearchOutcome:
    """Search the package index.

    With ``use_cache`` the cache is consulted first and written through;
    without it the index is always queried and the cache left untouched.
    """
    query = query.strip()
    outcome = SearchOutcome(query=query)
    if not query:
        return outcome

    if not use_cache:
        try:
            packages = components.fetcher.search(query)
        except FetchError as e:
            outcome.error = str(e)
            return outcome
        outcome.packages = components.resolver.mark_installed_packages(packages)
        return outcome

    coordinator = SearchCoordinator(
        components.cache,
        components.fetcher,
        components.resolver,
        queue.Queue(),
    )
    try:
        result = coordinator.resolve(query)
    except FetchError as e:
        outcome.error = str(e)
        return outcome
    finally:
        coordinator.close()

    outcome.packages = result.packages
    outcome.from_cache = result.from_cache
    outcome.stale = result.stale
    return outcome


def package_info(components: Components, import_path: str) -> PackageInfo:
    """Fetch one package's detail page and annotate its installed status."""
    info = PackageInfo(url=components.fetcher.package_url(import_path))
    try:
        pkg = components.fetcher.fetch_package_details(import_path)
    except FetchError as e:
        info.error = str(e)
        return info

    info.package = components.resolver.mark_installed_packages([pkg])[0]
    return info
