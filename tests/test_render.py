"""
Tests for debsnapgit/render.py rendering functions.
"""
from datetime import datetime, timezone

from debsnapgit import render
from debsnapgit.infra.git_client import GitCommit
from debsnapgit.services.walker import WalkResult
from fakes import utc


class TestRenderTable:
    """Tests for render_table function."""

    def test_empty_rows_shows_message(self, capsys):
        render.render_table(["Col1", "Col2"], [])
        captured = capsys.readouterr()
        assert "No data to display" in captured.out

    def test_single_row(self, capsys):
        render.render_table(["Name", "Value"], [["test", "123"]])
        captured = capsys.readouterr()
        assert "test" in captured.out
        assert "123" in captured.out


class TestRenderWalkResult:

    def test_no_new_snapshots(self, capsys):
        render.render_walk_result(WalkResult(start=utc(2024, 1, 1), end=utc(2024, 1, 2)))
        captured = capsys.readouterr()
        assert "No new snapshots after 20240101T000000Z" in captured.out

    def test_lists_commits(self, capsys):
        result = WalkResult(
            start=utc(2024, 1, 1),
            end=utc(2024, 1, 2),
            commits=[(utc(2024, 1, 1, 6), "0123456789abcdef" * 2)],
        )
        render.render_walk_result(result)
        captured = capsys.readouterr()
        assert "20240101T060000Z" in captured.out
        # Commit hashes are abbreviated
        assert "0123456789ab" in captured.out
        assert "0123456789abcdef0123" not in captured.out


class TestRenderHistory:

    def test_empty(self, capsys):
        render.render_history([])
        assert "No snapshots committed yet" in capsys.readouterr().out

    def test_rows(self, capsys):
        commit = GitCommit(
            hash="f" * 40,
            date=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
            author="debsnapgit",
            email="debsnapgit@localhost",
            message="snapshot at 20240101T120000Z",
        )
        render.render_history([commit])
        out = capsys.readouterr().out
        assert "2024-01-01 12:00:00" in out
        assert "ffffffffffff" in out
