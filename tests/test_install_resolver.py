"""
Tests for the install resolver — installed-status probing, ``go get``
command building, and streamed installs.
"""

from pathlib import Path

import pytest

from gopick.core.models.package import normalize_version, versioned_path
from gopick.core.services.install_resolver import (
    InstallError,
    InstallResolver,
    escape_module_path,
)
from tests.fakes import FakeGo, make_package


class TestInstalledStatus:
    def test_found_in_module_cache(self, resolver: InstallResolver, gomodcache: Path, fake_go: FakeGo):
        (gomodcache / "github.com" / "spf13" / "cobra@v1.8.0").mkdir(parents=True)

        assert resolver.is_installed("github.com/spf13/cobra") is True
        assert fake_go.run_calls == []

    def test_uppercase_paths_are_case_encoded(self, resolver: InstallResolver, gomodcache: Path):
        (gomodcache / "github.com" / "!burnt!sushi" / "toml@v1.3.2").mkdir(parents=True)
        assert resolver.is_installed("github.com/BurntSushi/toml") is True

    def test_falls_back_to_go_list(self, resolver: InstallResolver, fake_go: FakeGo):
        fake_go.listed.add("github.com/spf13/viper")
        assert resolver.is_installed("github.com/spf13/viper") is True
        assert fake_go.run_calls == [["go", "list", "-m", "github.com/spf13/viper"]]

    def test_not_installed(self, resolver: InstallResolver):
        assert resolver.is_installed("github.com/nobody/nothing") is False

    def test_short_path_never_installed(self, resolver: InstallResolver, fake_go: FakeGo):
        assert resolver.is_installed("fmt") is False
        assert fake_go.run_calls == []

    def test_memoized(self, resolver: InstallResolver, fake_go: FakeGo):
        resolver.is_installed("github.com/a/b")
        resolver.is_installed("github.com/a/b")
        assert len(fake_go.run_calls) == 1

    def test_refresh_cache_reprobes(self, resolver: InstallResolver, fake_go: FakeGo):
        assert resolver.is_installed("github.com/a/b") is False
        fake_go.listed.add("github.com/a/b")
        assert resolver.is_installed("github.com/a/b") is False

        resolver.refresh_cache()
        assert resolver.is_installed("github.com/a/b") is True

    def test_mark_installed_packages_copies(self, resolver: InstallResolver, fake_go: FakeGo):
        fake_go.listed.add("github.com/a/yes")
        original = [make_package("github.com/a/yes"), make_package("github.com/a/no")]

        marked = resolver.mark_installed_packages(original)

        assert [p.is_installed for p in marked] == [True, False]
        assert [p.is_installed for p in original] == [False, False]

    def test_escape_module_path(self):
        assert escape_module_path("github.com/BurntSushi/toml") == "github.com/!burnt!sushi/toml"


class TestInstallCommand:
    def test_only_missing_packages(self, resolver: InstallResolver):
        packages = [
            make_package("github.com/spf13/cobra", "1.8.0"),
            make_package("github.com/spf13/viper").model_copy(update={"is_installed": True}),
            make_package("github.com/gin-gonic/gin"),
        ]
        assert resolver.get_install_command(packages) == (
            "go get github.com/spf13/cobra@v1.8.0 github.com/gin-gonic/gin"
        )

    @pytest.mark.parametrize(("raw", "stored", "target"), [
        ("v1.8.0", "1.8.0", "a.com/b/c@v1.8.0"),
        ("v0.0.0-20240101000000-abcdef123456", "0.0.0-20240101000000-abcdef123456",
         "a.com/b/c@v0.0.0-20240101000000-abcdef123456"),
        ("latest", "latest", "a.com/b/c@latest"),
        ("master", "master", "a.com/b/c@master"),
        ("1234567", "1234567", "a.com/b/c@1234567"),
    ])
    def test_version_queries(self, raw: str, stored: str, target: str):
        assert normalize_version(raw) == stored
        assert versioned_path("a.com/b/c", stored) == target

    def test_empty_when_all_installed(self, resolver: InstallResolver):
        pkg = make_package("github.com/spf13/cobra").model_copy(update={"is_installed": True})
        assert resolver.get_install_command([pkg]) == ""
        assert resolver.get_install_command([]) == ""

    def test_custom_go_binary(self, gomodcache: Path, fake_go: FakeGo):
        resolver = InstallResolver(gomodcache, go_binary="go1.22", run=fake_go.run, stream=fake_go.stream)
        assert resolver.get_install_command([make_package("a.com/b/c")]) == "go1.22 get a.com/b/c"

    def test_go_env(self, resolver: InstallResolver):
        assert resolver.go_env("GOPATH") == "/fake/gopath"

    def test_module_cache_located_through_go_env(self, fake_go: FakeGo):
        resolver = InstallResolver(run=fake_go.run, stream=fake_go.stream)
        assert resolver.gomodcache == Path("/fake/gomodcache")
        assert fake_go.run_calls[0] == ["go", "env", "GOMODCACHE"]

    def test_locate_falls_back_to_gopath(self):
        answers = {"GOMODCACHE": {"ok": True, "stdout": "\n"}, "GOPATH": {"ok": True, "stdout": "/work/go\n"}}
        resolver = InstallResolver(run=lambda cmd, **kw: answers[cmd[-1]])
        assert resolver.locate_gomodcache() == Path("/work/go/pkg/mod")


class TestInstall:
    def test_single_package_events(self, resolver: InstallResolver, fake_go: FakeGo):
        fake_go.stdout = ["go: added github.com/spf13/cobra v1.8.0"]
        fake_go.stderr = ["go: downloading github.com/spf13/cobra v1.8.0", "noise"]

        events = list(resolver.install_package_events("github.com/spf13/cobra", "1.8.0"))

        assert fake_go.stream_calls == [["go", "get", "github.com/spf13/cobra@v1.8.0"]]
        assert events == [
            "Installing github.com/spf13/cobra...",
            "go: added github.com/spf13/cobra v1.8.0",
            "go: downloading github.com/spf13/cobra v1.8.0",
            "✓ github.com/spf13/cobra installed successfully",
        ]

    def test_failure_includes_stderr(self, resolver: InstallResolver, fake_go: FakeGo):
        fake_go.failing["github.com/bad/pkg"] = "go: module github.com/bad/pkg: not found"

        with pytest.raises(InstallError, match="not found"):
            list(resolver.install_package_events("github.com/bad/pkg"))

    def test_cannot_start(self, gomodcache: Path, fake_go: FakeGo):
        def missing(cmd, **kwargs):
            raise FileNotFoundError("go")
            yield  # pragma: no cover

        resolver = InstallResolver(gomodcache, run=fake_go.run, stream=missing)
        with pytest.raises(InstallError, match="failed to start"):
            list(resolver.install_package_events("a.com/b/c"))

    def test_install_invalidates_status(self, resolver: InstallResolver):
        assert resolver.is_installed("github.com/a/b") is False
        list(resolver.install_package_events("github.com/a/b"))
        assert resolver.is_installed("github.com/a/b") is True

    def test_multi_package_progress(self, resolver: InstallResolver, fake_go: FakeGo):
        packages = [
            make_package("github.com/a/one"),
            make_package("github.com/a/two").model_copy(update={"is_installed": True}),
            make_package("github.com/a/three"),
            make_package("github.com/a/four"),
        ]
        events = list(resolver.install_packages_events(packages))

        assert [c[-1] for c in fake_go.stream_calls] == ["github.com/a/one", "github.com/a/three", "github.com/a/four"]
        assert any(e.message == "✓ github.com/a/two already installed" and e.percent == 50.0 for e in events)
        assert {e.percent for e in events if "three" in e.message} == {75.0}
        assert events[-1].message == "All packages installed successfully!"
        assert events[-1].percent == 100.0

    def test_stops_at_first_failure(self, resolver: InstallResolver, fake_go: FakeGo):
        fake_go.failing["github.com/a/two"] = "boom"
        packages = [make_package(f"github.com/a/{n}") for n in ("one", "two", "three")]

        with pytest.raises(InstallError, match="failed to install github.com/a/two"):
            list(resolver.install_packages_events(packages))
        assert [c[-1] for c in fake_go.stream_calls] == ["github.com/a/one", "github.com/a/two"]

    def test_callback_form(self, resolver: InstallResolver):
        seen: list[tuple[str, float]] = []
        resolver.install_packages([make_package("github.com/a/one")], lambda m, p: seen.append((m, p)))
        assert seen[-1] == ("All packages installed successfully!", 100.0)

    def test_single_package_callback(self, resolver: InstallResolver):
        seen: list[str] = []
        resolver.install_package("github.com/a/one", seen.append)
        assert seen[0] == "Installing github.com/a/one..."
        assert seen[-1] == "✓ github.com/a/one installed successfully"
