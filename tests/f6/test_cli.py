"""Tests for the command line interface (F6)."""

from typer.testing import CliRunner

from skillforge.cli.commands import app
from skillforge.db.database import init_db
from skillforge.db.users_repository import create_profile

runner = CliRunner()


class TestInitDb:
    def test_creates_database(self, tmp_path):
        db_path = tmp_path / "db" / "cli.db"

        result = runner.invoke(app, ["init-db", "--db", str(db_path)])

        assert result.exit_code == 0
        assert "Database ready" in result.output
        assert db_path.exists()


class TestUsers:
    def test_lists_profiles(self, tmp_path):
        db_path = tmp_path / "cli.db"
        init_db(db_path)
        create_profile("u1", "ana@example.com", "Ana")

        result = runner.invoke(app, ["users", "--db", str(db_path)])

        assert result.exit_code == 0
        assert "Ana" in result.output

    def test_no_users(self, tmp_path):
        result = runner.invoke(app, ["users", "--db", str(tmp_path / "empty.db")])

        assert result.exit_code == 0
        assert "No users found" in result.output


class TestQuiz:
    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["quiz", str(tmp_path / "nope.md")])

        assert result.exit_code == 1
        assert "File not found" in result.output
