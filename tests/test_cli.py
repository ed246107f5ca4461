"""
Tests for the debsnapgit command line.

External services are mocked: the snapshot client is patched out and
walks are replaced by a prepared result. The history command runs
against a real git repository.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from debsnapgit.cli import cli, main
from debsnapgit.domain.package import ArchiveSnapshot, PackageRecord, Selector
from debsnapgit.exit_codes import API_ERROR, CONFIG_ERROR, MissingIndexError
from debsnapgit.infra.git_client import GitArchiveStore
from debsnapgit.services.grouping import group_packages
from debsnapgit.services.materializer import ArchiveMaterializer
from debsnapgit.services.walker import WalkResult
from fakes import requires_git, utc


@pytest.fixture
def runner():
    return CliRunner()


def walk_result():
    return WalkResult(
        start=utc(2024, 1, 1),
        end=utc(2024, 1, 2),
        commits=[(utc(2024, 1, 1, 6), "a" * 40), (utc(2024, 1, 1, 12), "b" * 40)],
    )


class TestConfigCommands:

    def test_show_defaults(self, runner, isolated_home):
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["snapshot"]["distribution"] == "sid"

    def test_show_path(self, runner, isolated_home):
        result = runner.invoke(cli, ["config", "show", "--path"])
        assert result.exit_code == 0
        assert json.loads(result.output)["config_path"].endswith("config.json")

    def test_init_writes_file(self, runner, isolated_home):
        target = isolated_home / "debsnapgit.yaml"
        result = runner.invoke(cli, ["config", "init", "--path", str(target)])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"config_path": str(target)}
        assert "snapshot:" in target.read_text()

    def test_init_refuses_to_overwrite(self, runner, isolated_home):
        target = isolated_home / "config.json"
        target.write_text("{}")

        result = runner.invoke(cli, ["config", "init", "--path", str(target)])
        assert result.exit_code == 1
        assert target.read_text() == "{}"

        result = runner.invoke(cli, ["config", "init", "--path", str(target), "--force"])
        assert result.exit_code == 0
        assert "snapshot" in json.loads(target.read_text())


class TestResolveCommand:

    @patch("debsnapgit.commands.resolve.SnapshotClient")
    def test_resolve_prints_snapshot(self, client_class, runner, isolated_home):
        client = client_class.return_value.__enter__.return_value
        client.resolve.return_value = utc(2021, 8, 1, 2, 32, 34)
        client.snapshot_url.return_value = "https://snapshot.debian.org/archive/debian/20210801T023234Z/"

        result = runner.invoke(cli, ["resolve", "20210801T050000Z"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "requested": "20210801T050000Z",
            "snapshot": "20210801T023234Z",
            "url": "https://snapshot.debian.org/archive/debian/20210801T023234Z/",
        }
        client.resolve.assert_called_once_with(utc(2021, 8, 1, 5))

    @patch("debsnapgit.commands.resolve.SnapshotClient")
    def test_base_url_option(self, client_class, runner, isolated_home):
        client = client_class.return_value.__enter__.return_value
        client.resolve.return_value = utc(2021, 8, 1)
        client.snapshot_url.return_value = "http://mirror/debian/20210801T000000Z/"

        runner.invoke(cli, ["resolve", "2021-08-01", "--base-url", "http://mirror"])

        assert client_class.call_args.kwargs["base_url"] == "http://mirror"

    def test_bad_timespec(self, runner, isolated_home):
        result = runner.invoke(cli, ["resolve", "whenever"])
        assert result.exit_code == 2
        assert "whenever" in result.output


class TestWalkCommand:

    @patch("debsnapgit.commands.walk.build_walker")
    @patch("debsnapgit.commands.walk.SnapshotClient")
    def test_walk_prints_result(self, client_class, build_walker, runner, isolated_home):
        build_walker.return_value.run.return_value = walk_result()

        result = runner.invoke(cli, ["walk"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["snapshots"] == 2
        assert data["commits"][1] == {"instant": "20240101T120000Z", "commit": "b" * 40}

    @patch("debsnapgit.commands.walk.build_walker")
    @patch("debsnapgit.commands.walk.SnapshotClient")
    def test_overrides_reach_the_walker(self, client_class, build_walker, runner, isolated_home):
        build_walker.return_value.run.return_value = walk_result()

        result = runner.invoke(cli, [
            "walk", "--dist", "bookworm", "--arch", "arm64",
            "--step", "1d", "--lookback", "7d",
            "--repo", str(isolated_home / "repo"), "--max-snapshots", "3",
        ])

        assert result.exit_code == 0
        walk_config, client = build_walker.call_args.args
        assert walk_config.selector == Selector("bookworm", "main", "arm64")
        assert walk_config.step.days == 1
        assert walk_config.lookback.days == 7
        assert walk_config.repository_path == isolated_home / "repo"
        assert client is client_class.return_value.__enter__.return_value
        assert build_walker.call_args.kwargs["max_snapshots"] == 3

    @patch("debsnapgit.commands.walk.build_walker")
    @patch("debsnapgit.commands.walk.SnapshotClient")
    def test_pretty_output(self, client_class, build_walker, runner, isolated_home):
        build_walker.return_value.run.return_value = walk_result()
        result = runner.invoke(cli, ["walk", "--pretty"])
        assert result.exit_code == 0
        assert "20240101T060000Z" in result.output

    def test_max_snapshots_must_be_positive(self, runner, isolated_home):
        result = runner.invoke(cli, ["walk", "--max-snapshots", "0"])
        assert result.exit_code == 2

    def test_bad_step_is_config_error(self, runner, isolated_home):
        result = runner.invoke(cli, ["walk", "--step", "often"])
        assert result.exit_code != 0
        assert result.exception.exit_code == CONFIG_ERROR


class TestMain:
    """Exit codes from the console entry point."""

    @patch("debsnapgit.commands.walk.build_walker")
    @patch("debsnapgit.commands.walk.SnapshotClient")
    def test_archive_error_exit_code(self, client_class, build_walker, isolated_home, monkeypatch):
        build_walker.return_value.run.side_effect = MissingIndexError(
            "received non-ok status 404 Not Found", status_code=404, operation="fetch")
        monkeypatch.setattr("sys.argv", ["debsnapgit", "walk"])

        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == API_ERROR

    def test_usage_error_exit_code(self, isolated_home, monkeypatch):
        monkeypatch.setattr("sys.argv", ["debsnapgit", "resolve"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 2

    def test_success_returns_zero(self, isolated_home, monkeypatch):
        monkeypatch.setattr("sys.argv", ["debsnapgit", "config", "show", "--path"])
        assert main() == 0


@requires_git
class TestHistoryCommand:

    def make_archive(self, path):
        store = GitArchiveStore(path)
        store.ensure_repository()
        materializer = ArchiveMaterializer(store)
        selector = Selector("sid", "main", "amd64")
        for instant, version in [(utc(2024, 1, 1, 6), "1.0"), (utc(2024, 1, 1, 12), "1.1")]:
            records = [PackageRecord({"Package": "foo", "Version": version})]
            materializer.materialize(
                ArchiveSnapshot(instant=instant, selector=selector, groups=group_packages(records)))

    def test_jsonl_newest_first(self, runner, isolated_home):
        repo = isolated_home / "archive"
        self.make_archive(repo)

        result = runner.invoke(cli, ["history", "--repo", str(repo)])

        assert result.exit_code == 0
        lines = [json.loads(line) for line in result.output.splitlines()]
        assert [entry["message"] for entry in lines] == [
            "snapshot at 20240101T120000Z",
            "snapshot at 20240101T060000Z",
        ]
        assert lines[0]["date"].startswith("2024-01-01T12:00:00")

    def test_limit(self, runner, isolated_home):
        repo = isolated_home / "archive"
        self.make_archive(repo)
        result = runner.invoke(cli, ["history", "--repo", str(repo), "-n", "1"])
        assert len(result.output.splitlines()) == 1

    def test_not_a_repository(self, runner, isolated_home):
        (isolated_home / "empty").mkdir()
        result = runner.invoke(cli, ["history", "--repo", str(isolated_home / "empty")])
        assert result.exit_code == 1
        assert "No archive repository" in result.output


def test_unknown_command(runner):
    result = runner.invoke(cli, ["frobnicate"])
    assert result.exit_code == 2
