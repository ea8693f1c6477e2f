"""
Search-page extraction — turn a pkg.go.dev results page into Packages.

The page markup has changed over time, so extraction is an ordered
chain of strategies from the most structural selector to the loosest.
The first strategy that yields at least one package wins; later ones
are not consulted.

    1. ``div.SearchSnippet``      — current snippet blocks
    2. ``article.SearchSnippet``  — older snippet blocks
    3. ``[data-test-id='snippet-title']`` title links
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from bs4 import BeautifulSoup, Tag

from gopick.core.models.package import Package

logger = logging.getLogger(__name__)

_TITLE_LINK = "h2 a, h3 a, [data-test-id='snippet-title'] a"
_SYNOPSIS_SELECTORS = (
    "p.SearchSnippet-synopsis",
    "[data-test-id='snippet-synopsis']",
    ".SearchSnippet-synopsis",
    "p:first-of-type",
)
_VERSION = ".SearchSnippet-version, [data-test-id='snippet-version']"


def import_path_from_href(href: str | None) -> str:
    """``/github.com/spf13/cobra`` → ``github.com/spf13/cobra``."""
    if not href:
        return ""
    return href.removeprefix("/").strip()


def leaf_name(import_path: str) -> str:
    """Last path segment of an import path."""
    return import_path.rstrip("/").rsplit("/", 1)[-1]


def clean_version(text: str) -> str:
    return text.strip().removeprefix("v").strip()


def _text(el: Tag | None) -> str:
    return el.get_text(strip=True) if el is not None else ""


class ExtractionStrategy(Protocol):
    name: str

    def extract(self, soup: BeautifulSoup) -> list[Package]: ...


@dataclass(frozen=True)
class SnippetStrategy:
    """One Package per snippet block matching ``selector``."""

    selector: str

    @property
    def name(self) -> str:
        return f"snippet:{self.selector}"

    def extract(self, soup: BeautifulSoup) -> list[Package]:
        packages = []
        for block in soup.select(self.selector):
            pkg = parse_snippet(block)
            if pkg is not None:
                packages.append(pkg)
        return packages


@dataclass(frozen=True)
class TitleLinkStrategy:
    """Fallback: bare title links, synopsis looked up in the parent element."""

    selector: str = "[data-test-id='snippet-title']"

    @property
    def name(self) -> str:
        return f"title:{self.selector}"

    def extract(self, soup: BeautifulSoup) -> list[Package]:
        packages = []
        for title in soup.select(self.selector):
            link = title.find("a")
            if not isinstance(link, Tag):
                continue
            import_path = import_path_from_href(link.get("href"))
            if not import_path:
                continue

            description = ""
            if isinstance(title.parent, Tag):
                description = _text(title.parent.select_one("[data-test-id='snippet-synopsis']"))

            packages.append(Package(
                name=_text(link) or leaf_name(import_path),
                import_path=import_path,
                description=description,
            ))
        return packages


def parse_snippet(block: Tag) -> Package | None:
    """Parse one snippet block. Returns None when it has no usable link."""
    link = block.select_one(_TITLE_LINK) or block.find("a")
    if not isinstance(link, Tag):
        return None

    import_path = import_path_from_href(link.get("href"))
    if not import_path:
        return None

    description = ""
    for selector in _SYNOPSIS_SELECTORS:
        description = _text(block.select_one(selector))
        if description:
            break

    return Package(
        name=_text(link) or leaf_name(import_path),
        import_path=import_path,
        description=description,
        version=clean_version(_text(block.select_one(_VERSION))),
    )


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    SnippetStrategy("div.SearchSnippet"),
    SnippetStrategy("article.SearchSnippet"),
    TitleLinkStrategy(),
)


def extract_packages(
    soup: BeautifulSoup,
    strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
) -> list[Package]:
    """Run the strategy chain; the first non-empty result wins."""
    for strategy in strategies:
        packages = strategy.extract(soup)
        if packages:
            logger.debug("Extracted %d packages via %s", len(packages), strategy.name)
            return packages
    return []
