"""
Install resolver — is a Go module installed, and how to install it.

Installed status is probed in two phases and memoized per process:

    1. Look in the module cache (GOMODCACHE) for a ``<leaf>@<version>``
       directory next to where the module would live, e.g.
       ``$GOMODCACHE/github.com/spf13/cobra@v1.8.0``.
    2. Ask the toolchain: ``go list -m <import path>``. Any output
       counts as installed.

Installs shell out to ``go get`` and are exposed as generators of
progress messages, so the caller decides which thread consumes them.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from gopick.adapters.shell.command import run_command, stream_command
from gopick.core.models.package import Package, versioned_path

logger = logging.getLogger(__name__)

# stderr lines from `go get` worth showing as progress
_PROGRESS_MARKER = "downloading"


class InstallError(Exception):
    """``go get`` could not be started or exited non-zero."""


@dataclass(frozen=True)
class InstallEvent:
    """One progress event from a multi-package install."""

    message: str
    percent: float


def escape_module_path(path: str) -> str:
    """Case-encode a module path the way the module cache stores it (``A`` → ``!a``)."""
    return "".join(f"!{c.lower()}" if c.isupper() else c for c in path)


class InstallResolver:
    """Installed-status lookup plus ``go get`` command building and execution."""

    def __init__(
        self,
        gomodcache: Path | None = None,
        *,
        go_binary: str = "go",
        run: Callable[..., dict] = run_command,
        stream: Callable[..., Iterator[dict]] = stream_command,
    ):
        self._gomodcache = gomodcache
        self._go = go_binary
        self._run = run
        self._stream = stream
        self._installed: dict[str, bool] = {}
        self._lock = threading.Lock()

    @property
    def gomodcache(self) -> Path:
        """The module cache directory, located through ``go env`` when not given."""
        if self._gomodcache is None:
            self._gomodcache = self.locate_gomodcache()
        return self._gomodcache

    # ── Status ──────────────────────────────────────────────────

    def is_installed(self, import_path: str) -> bool:
        with self._lock:
            if import_path in self._installed:
                return self._installed[import_path]

        installed = self._probe(import_path)

        with self._lock:
            self._installed[import_path] = installed
        return installed

    def mark_installed_packages(self, packages: Iterable[Package]) -> list[Package]:
        """Copies of ``packages`` with ``is_installed`` filled in."""
        return [
            pkg.model_copy(update={"is_installed": self.is_installed(pkg.import_path)})
            for pkg in packages
        ]

    def refresh_cache(self) -> None:
        """Forget every memoized status."""
        with self._lock:
            self._installed.clear()

    def invalidate(self, import_path: str) -> None:
        with self._lock:
            self._installed.pop(import_path, None)

    def _probe(self, import_path: str) -> bool:
        parts = import_path.strip("/").split("/")
        if len(parts) < 2:
            return False

        *parent, leaf = parts
        search_dir = self.gomodcache.joinpath(*(escape_module_path(p) for p in parent))
        prefix = escape_module_path(leaf) + "@"
        try:
            for entry in search_dir.iterdir():
                if entry.is_dir() and entry.name.startswith(prefix):
                    logger.debug("%s found in module cache: %s", import_path, entry.name)
                    return True
        except OSError:
            pass

        result = self._run([self._go, "list", "-m", import_path], timeout=15)
        return bool(result.get("ok") and result.get("stdout", "").strip())

    # ── Commands ────────────────────────────────────────────────

    def get_install_command(self, packages: Iterable[Package]) -> str:
        """``go get`` for the packages not yet installed, or ``""`` if none.

        Packages with a known version are pinned as ``path@version``.
        """
        targets = [pkg.versioned_path for pkg in packages if not pkg.is_installed]
        if not targets:
            return ""
        return f"{self._go} get {' '.join(targets)}"

    def go_env(self, key: str) -> str:
        """Value of ``go env KEY``.

        Raises:
            InstallError: If the toolchain cannot be queried.
        """
        result = self._run([self._go, "env", key], timeout=15)
        if not result.get("ok"):
            raise InstallError(f"failed to get {key}: {result.get('error', '')}")
        return result.get("stdout", "").strip()

    def locate_gomodcache(self) -> Path:
        """``go env GOMODCACHE``, then ``$(go env GOPATH)/pkg/mod``, then ``~/go/pkg/mod``."""
        for key in ("GOMODCACHE", "GOPATH"):
            try:
                value = self.go_env(key)
            except InstallError as e:
                logger.debug("go env %s unavailable: %s", key, e)
                continue
            if not value:
                continue
            if key == "GOPATH":
                return Path(value.split(os.pathsep)[0]) / "pkg" / "mod"
            return Path(value)
        return Path.home() / "go" / "pkg" / "mod"

    # ── Install ─────────────────────────────────────────────────

    def install_package_events(self, import_path: str, version: str = "") -> Iterator[str]:
        """Install one package, yielding progress lines as ``go get`` runs.

        ``version`` pins the install (see ``versioned_path``).

        Raises:
            InstallError: If ``go get`` cannot start or exits non-zero.
                The error message includes the captured stderr.
        """
        self.invalidate(import_path)
        yield f"Installing {import_path}..."

        stderr_lines: list[str] = []
        returncode = None
        try:
            target = versioned_path(import_path, version)
            for event in self._stream([self._go, "get", target]):
                kind = event["type"]
                if kind == "stdout":
                    yield event["line"]
                elif kind == "stderr":
                    stderr_lines.append(event["line"])
                    if _PROGRESS_MARKER in event["line"]:
                        yield event["line"]
                elif kind == "exit":
                    returncode = event["returncode"]
        except OSError as e:
            raise InstallError(f"failed to start installation: {e}") from e

        if returncode != 0:
            stderr = "\n".join(stderr_lines)
            raise InstallError(f"installation failed (exit {returncode})\n{stderr}".rstrip())

        logger.info("Installed %s", import_path)
        yield f"✓ {import_path} installed successfully"

    def install_package(
        self,
        import_path: str,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        for message in self.install_package_events(import_path):
            if on_progress is not None:
                on_progress(message)

    def install_packages_events(self, packages: list[Package]) -> Iterator[InstallEvent]:
        """Install packages one at a time, in order.

        Already-installed packages are reported without running ``go``.
        The first failure stops the run.

        Raises:
            InstallError: Naming the package that failed.
        """
        total = len(packages)
        for i, pkg in enumerate(packages):
            percent = (i + 1) / total * 100

            if pkg.is_installed:
                yield InstallEvent(f"✓ {pkg.import_path} already installed", percent)
                continue

            try:
                for message in self.install_package_events(pkg.import_path, pkg.version):
                    yield InstallEvent(message, percent)
            except InstallError as e:
                raise InstallError(f"failed to install {pkg.import_path}: {e}") from e

        yield InstallEvent("All packages installed successfully!", 100.0)

    def install_packages(
        self,
        packages: list[Package],
        on_progress: Callable[[str, float], None] | None = None,
    ) -> None:
        for event in self.install_packages_events(packages):
            if on_progress is not None:
                on_progress(event.message, event.percent)
