"""
Tests for CLI commands — global options, one-shot search/info/install,
and the cache, history and config groups.
"""

import json
import textwrap
from datetime import timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner

from gopick import main
from gopick.adapters.shell import tty
from gopick.core.models.history import HistoryAction
from gopick.core.persistence.history_log import HistoryLog
from gopick.core.persistence.result_cache import ResultCache
from gopick.core.services.fetcher import Fetcher
from gopick.core.services.install_resolver import InstallResolver
from gopick.core.use_cases import bootstrap
from gopick.main import cli
from tests.fakes import DETAILS_PAGE, SEARCH_PAGE, FakeGo, FakeHttp, html


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(textwrap.dedent(f"""\
        cache_dir: {tmp_path}/cache
        history_file: {tmp_path}/history/.gopick_history
        gomodcache_path: {tmp_path}/mod
        max_retries: 1
    """))
    return path


@pytest.fixture
def go(monkeypatch: pytest.MonkeyPatch) -> FakeGo:
    fake = FakeGo()

    def resolver(gomodcache, *, go_binary="go"):
        return InstallResolver(gomodcache, go_binary=go_binary, run=fake.run, stream=fake.stream)

    monkeypatch.setattr(bootstrap, "InstallResolver", resolver)
    return fake


@pytest.fixture
def http(monkeypatch: pytest.MonkeyPatch) -> FakeHttp:
    fake = FakeHttp()

    def fetcher(base_url, *, retry=None, timeout=10.0):
        return Fetcher(base_url, retry=retry, timeout=timeout, http=fake, sleep=lambda s: None)

    monkeypatch.setattr(bootstrap, "Fetcher", fetcher)
    return fake


def _invoke(config_file: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config_file), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "pkg.go.dev" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config_exits_1(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "nope.yml"), "cache", "path"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_config_exits_1(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text("cache_ttl_days: lots\n")
        result = CliRunner().invoke(cli, ["--config", str(path), "config", "show"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestSearchCommand:
    def test_search(self, config_file: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(200, SEARCH_PAGE))
        result = _invoke(config_file, "search", "cobra")

        assert result.exit_code == 0, result.output
        assert "github.com/spf13/cobra" in result.output
        assert "github.com/spf13/viper" in result.output

    def test_search_json_and_cache(self, config_file: Path, tmp_path: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(200, SEARCH_PAGE))
        first = json.loads(_invoke(config_file, "search", "cobra", "--json").output)
        second = json.loads(_invoke(config_file, "search", "cobra", "--json").output)

        assert first["from_cache"] is False
        assert second["from_cache"] is True
        assert [p["import_path"] for p in second["packages"]] == [
            "github.com/spf13/cobra",
            "github.com/spf13/viper",
        ]
        assert second["packages"][0]["is_installed"] is False
        assert len(http.urls) == 1

    def test_no_cache_skips_cache(self, config_file: Path, tmp_path: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(200, SEARCH_PAGE))
        result = _invoke(config_file, "search", "cobra", "--no-cache")
        assert result.exit_code == 0
        assert list((tmp_path / "cache").iterdir()) == []

    def test_search_failure(self, config_file: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(500, ""))
        result = _invoke(config_file, "search", "cobra")
        assert result.exit_code == 1
        assert "Search failed" in result.output

    def test_multiword_query(self, config_file: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(200, "<html></html>"))
        result = _invoke(config_file, "search", "web", "framework")
        assert "No packages found" in result.output
        assert http.urls[0].endswith("q=web+framework")


class TestInfoCommand:
    def test_info(self, config_file: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(200, DETAILS_PAGE))
        result = _invoke(config_file, "info", "github.com/spf13/cobra")
        assert result.exit_code == 0
        assert "v1.8.0" in result.output
        assert "Package cobra is a commander." in result.output

    def test_info_not_found_json(self, config_file: Path, go: FakeGo, http: FakeHttp):
        http.responses.append(html(404, ""))
        result = _invoke(config_file, "info", "github.com/no/such", "--json")
        assert result.exit_code == 1
        assert "package not found" in json.loads(result.output)["error"]


class TestInstallCommand:
    def test_install_records_history(self, config_file: Path, tmp_path: Path, go: FakeGo):
        result = _invoke(config_file, "install", "github.com/spf13/cobra@v1.8.0")

        assert result.exit_code == 0, result.output
        assert go.stream_calls == [["go", "get", "github.com/spf13/cobra@v1.8.0"]]
        assert "100%" in result.output

        log = HistoryLog(tmp_path / "history" / ".gopick_history")
        assert [(e.import_path, e.action) for e in log.get_all()] == [
            ("github.com/spf13/cobra", HistoryAction.INSTALLED),
        ]

    @pytest.mark.parametrize("query", ["latest", "master", "v2"])
    def test_non_semver_query_kept(self, config_file: Path, go: FakeGo, query: str):
        result = _invoke(config_file, "install", f"github.com/spf13/cobra@{query}")

        assert result.exit_code == 0, result.output
        assert go.stream_calls == [["go", "get", f"github.com/spf13/cobra@{query}"]]

    def test_install_failure(self, config_file: Path, go: FakeGo):
        go.failing["github.com/bad/pkg"] = "go: not found"
        result = _invoke(config_file, "install", "github.com/bad/pkg")
        assert result.exit_code == 1
        assert "failed to install github.com/bad/pkg" in result.output


class TestCacheCommands:
    def test_path(self, config_file: Path, tmp_path: Path):
        result = _invoke(config_file, "cache", "path")
        assert result.output.strip() == str(tmp_path / "cache")

    def test_clear(self, config_file: Path, tmp_path: Path, go: FakeGo):
        cache = ResultCache(tmp_path / "cache", timedelta(days=7))
        cache.set("a", [])
        cache.set("b", [])
        result = _invoke(config_file, "cache", "clear")
        assert result.exit_code == 0
        assert "2 entries" in result.output

    def test_clean(self, config_file: Path, go: FakeGo):
        result = _invoke(config_file, "cache", "clean")
        assert result.exit_code == 0
        assert "Removed 0" in result.output


class TestHistoryCommands:
    def _seed(self, tmp_path: Path) -> None:
        log = HistoryLog(tmp_path / "history" / ".gopick_history")
        log.add("cobra", "github.com/spf13/cobra", HistoryAction.VIEWED)
        log.add("gin", "github.com/gin-gonic/gin", HistoryAction.INSTALLED)

    def test_list_empty(self, config_file: Path, go: FakeGo):
        result = _invoke(config_file, "history", "list")
        assert result.exit_code == 0
        assert "No history" in result.output

    def test_list(self, config_file: Path, tmp_path: Path, go: FakeGo):
        self._seed(tmp_path)
        result = _invoke(config_file, "history", "list")
        assert "github.com/spf13/cobra" in result.output
        assert "github.com/gin-gonic/gin" in result.output

    def test_list_recent_json(self, config_file: Path, tmp_path: Path, go: FakeGo):
        self._seed(tmp_path)
        data = json.loads(_invoke(config_file, "history", "list", "--recent", "1", "--json").output)
        assert [e["package"] for e in data] == ["gin"]
        assert data[0]["action"] == "installed"

    def test_list_search(self, config_file: Path, tmp_path: Path, go: FakeGo):
        self._seed(tmp_path)
        result = _invoke(config_file, "history", "list", "--search", "spf13")
        assert "cobra" in result.output
        assert "gin-gonic" not in result.output

    def test_clear(self, config_file: Path, tmp_path: Path, go: FakeGo):
        self._seed(tmp_path)
        assert _invoke(config_file, "history", "clear").exit_code == 0
        assert HistoryLog(tmp_path / "history" / ".gopick_history").get_all() == []


class TestConfigCommands:
    def test_show_json(self, config_file: Path, tmp_path: Path):
        data = json.loads(_invoke(config_file, "config", "show", "--json").output)
        assert data["cache_ttl_days"] == 7
        assert data["max_retries"] == 1
        assert data["cache_dir"] == str(tmp_path / "cache")

    def test_show_yaml(self, config_file: Path):
        result = _invoke(config_file, "config", "show")
        assert "default_action: command" in result.output

    def test_path(self, config_file: Path):
        assert _invoke(config_file, "config", "path").output.strip() == str(config_file)


class TestEmitCommand:
    def test_injects_into_terminal(self, monkeypatch: pytest.MonkeyPatch):
        calls = []
        monkeypatch.setattr(tty, "inject_command", lambda cmd, press_enter=False: calls.append((cmd, press_enter)))
        main.emit_command("go get a.com/b/c", auto_run=True)
        assert calls == [("go get a.com/b/c", True)]

    def test_prints_when_injection_fails(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture):
        def refuse(cmd, press_enter=False):
            raise tty.TTYInjectionError("TIOCSTI is not available")

        monkeypatch.setattr(tty, "inject_command", refuse)
        main.emit_command("go get a.com/b/c", auto_run=False)

        captured = capsys.readouterr()
        assert captured.out.strip() == "go get a.com/b/c"
        assert "TIOCSTI" in captured.err
