"""
Theme — the colours and styles the renderer draws with.

Built once at startup and passed to the renderer; never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    primary: str = "#00D9FF"
    secondary: str = "#FF79C6"
    accent: str = "#50FA7B"
    warning: str = "#FFB86C"
    error: str = "#FF5555"

    foreground: str = "#C9D1D9"
    border: str = "#30363D"
    selected_bg: str = "#161B22"
    dimmed: str = "#8B949E"
    highlight: str = "#58A6FF"

    @property
    def title(self) -> str:
        return f"bold {self.primary}"

    @property
    def label(self) -> str:
        return f"bold {self.secondary}"

    @property
    def header(self) -> str:
        return f"bold {self.accent}"

    @property
    def package_name(self) -> str:
        return f"bold {self.highlight}"

    @property
    def cursor(self) -> str:
        return f"bold {self.primary} on {self.selected_bg}"

    @property
    def help_key(self) -> str:
        return f"bold {self.secondary}"

    @property
    def installed_badge(self) -> str:
        return f"bold black on {self.accent}"

    @property
    def cached_badge(self) -> str:
        return f"bold black on {self.warning}"

    def message(self, kind: str) -> str:
        return {
            "success": f"bold {self.accent}",
            "error": f"bold {self.error}",
        }.get(kind, self.primary)


DEFAULT_THEME = Theme()
