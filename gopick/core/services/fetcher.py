"""
Fetcher — search pkg.go.dev with bounded retries.

``search`` retries transport errors, non-2xx responses, and pages that
fail to parse, with exponential backoff between attempts. It never
falls back to cached data itself; callers own that policy.

``fetch_package_details`` is a single attempt: a non-2xx response for
a package page means the package does not exist.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from gopick.adapters.http import HttpResponse, TransportError, http_get
from gopick.core.models.package import Package
from gopick.core.reliability.retry import RetryPolicy
from gopick.core.services.extraction import (
    DEFAULT_STRATEGIES,
    ExtractionStrategy,
    clean_version,
    extract_packages,
    leaf_name,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://pkg.go.dev"

HttpGet = Callable[[str, float], HttpResponse]


class FetchError(Exception):
    """A search or detail request could not be completed."""


class PackageNotFoundError(FetchError):
    """The package index has no page for the requested import path."""


class Fetcher:
    """Client for the package index search and detail pages."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        retry: RetryPolicy | None = None,
        timeout: float = 10.0,
        http: HttpGet = http_get,
        sleep: Callable[[float], None] = time.sleep,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
    ):
        self._base_url = base_url.rstrip("/")
        self._retry = retry or RetryPolicy()
        self._timeout = timeout
        self._http = http
        self._sleep = sleep
        self._strategies = tuple(strategies)
        self.last_attempts = 0

    @property
    def base_url(self) -> str:
        return self._base_url

    def search_url(self, query: str) -> str:
        return f"{self._base_url}/search?q={quote_plus(query)}"

    def package_url(self, import_path: str) -> str:
        return f"{self._base_url}/{import_path.lstrip('/')}"

    # ── Search ──────────────────────────────────────────────────

    def search(self, query: str) -> list[Package]:
        """Search the index. Returns packages in page order.

        Raises:
            FetchError: If every attempt failed.
        """
        self.last_attempts = 0
        if not query:
            return []

        url = self.search_url(query)
        last_error = "no attempts made"

        for attempt in self._retry.attempts(self._sleep):
            self.last_attempts = attempt + 1
            try:
                soup = self._get_document(url)
            except FetchError as e:
                last_error = str(e)
                logger.info(
                    "Search attempt %d/%d for %r failed: %s",
                    attempt + 1,
                    self._retry.max_attempts,
                    query,
                    e,
                )
                continue

            packages = extract_packages(soup, self._strategies)
            logger.debug("Search %r → %d packages", query, len(packages))
            return packages

        raise FetchError(
            f"failed to fetch search results after {self.last_attempts} attempts: {last_error}"
        )

    # ── Details ─────────────────────────────────────────────────

    def fetch_package_details(self, import_path: str) -> Package:
        """Fetch one package page.

        Raises:
            PackageNotFoundError: On a non-2xx response.
            FetchError: On transport or parse failure.
        """
        url = self.package_url(import_path)
        try:
            resp = self._http(url, self._timeout)
        except TransportError as e:
            raise FetchError(f"failed to fetch package details: {e}") from e

        if not resp.ok:
            raise PackageNotFoundError(f"package not found: {import_path}")

        soup = self._parse(resp.body)

        h1 = soup.select_one("h1")
        name = h1.get_text(strip=True) if h1 is not None else ""

        overview = soup.select_one(".Documentation-overview p")
        description = overview.get_text(strip=True) if overview is not None else ""
        if not description:
            meta = soup.select_one("meta[name='description']")
            description = str(meta.get("content", "")).strip() if meta is not None else ""

        version_el = soup.select_one(".DetailsHeader-version")
        version = clean_version(version_el.get_text()) if version_el is not None else ""

        return Package(
            name=name or leaf_name(import_path),
            import_path=import_path,
            description=description,
            version=version,
        )

    # ── Internal ────────────────────────────────────────────────

    def _get_document(self, url: str) -> BeautifulSoup:
        try:
            resp = self._http(url, self._timeout)
        except TransportError as e:
            raise FetchError(str(e)) from e

        if not resp.ok:
            raise FetchError(f"unexpected status code: {resp.status}")

        return self._parse(resp.body)

    @staticmethod
    def _parse(body: bytes) -> BeautifulSoup:
        try:
            return BeautifulSoup(body, "html.parser")
        except ParserRejectedMarkup as e:
            raise FetchError(f"failed to parse page: {e}") from e
