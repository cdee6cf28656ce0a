"""Tests for the command-line interface."""

import asyncio

import pytest
import yaml
from typer.testing import CliRunner

from curation_tournament import __version__
from curation_tournament.cli import app
from curation_tournament.services.storage import DBSessionStore

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    data = {
        "judge": {"kind": "fake", "backoff_min": 0, "backoff_max": 0},
        "store": {"backend": "db", "url": f"sqlite:///{tmp_path / 'cli.db'}"},
    }
    path.write_text(yaml.dump(data))
    return path


def _only_session_id(config_path) -> str:
    url = yaml.safe_load(config_path.read_text())["store"]["url"]

    async def _list():
        store = DBSessionStore(url)
        try:
            sessions, _ = await store.list()
        finally:
            await store.close()
        return sessions

    sessions = asyncio.run(_list())
    assert len(sessions) == 1
    return sessions[0].id


class TestInfoCommands:
    """Tests for commands that need no store."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self):
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "Curation Tournament" in result.output

    def test_score(self):
        args = ["score", "--cultural", "90", "--technical", "80", "--conceptual", "70"]
        args += ["--emotional", "60", "--innovation", "50"]
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert "Score: 70" in result.output
        assert "MAYBE" in result.output

    def test_score_with_curator(self):
        args = ["score", "--cultural", "90", "--technical", "80", "--conceptual", "70"]
        args += ["--emotional", "60", "--innovation", "50", "--curator", "nina"]
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert "EXCLUDE" in result.output
        assert "needs-development" in result.output

    def test_score_batch(self, tmp_path):
        metrics = {
            "cultural": 90,
            "technical": 80,
            "conceptual": 70,
            "emotional": 60,
            "innovation": 50,
        }
        path = tmp_path / "works.yaml"
        path.write_text(
            yaml.dump(
                {
                    "works": [
                        {"id": "w1", "title": "Dawn", "metrics": metrics},
                        {"id": "w2", "title": "Draft"},
                    ]
                }
            )
        )

        result = runner.invoke(app, ["score-batch", str(path), "--name", "Spring"])
        assert result.exit_code == 0
        assert "Spring" in result.output
        assert "MAYBE" in result.output
        assert "Scored 1/2" in result.output

    def test_score_batch_rejects_bad_metrics(self, tmp_path):
        path = tmp_path / "works.yaml"
        path.write_text(yaml.dump([{"id": "w1", "title": "Dawn", "metrics": {"cultural": 101}}]))

        result = runner.invoke(app, ["score-batch", str(path)])
        assert result.exit_code == 1
        assert "Invalid works file" in result.output

    def test_score_batch_missing_file(self, tmp_path):
        result = runner.invoke(app, ["score-batch", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1

    def test_validate(self, config_path):
        result = runner.invoke(app, ["validate", str(config_path)])
        assert result.exit_code == 0
        assert "Configuration is valid!" in result.output

    def test_validate_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1


class TestTournamentCommands:
    """Tests for create/advance/show/list against a SQLite store."""

    def test_full_run(self, config_path):
        result = runner.invoke(
            app, ["create", "w1", "w2", "w3", "w4", "--curator", "nina", "-c", str(config_path)]
        )
        assert result.exit_code == 0, result.output
        assert "Tournament created!" in result.output
        session_id = _only_session_id(config_path)

        result = runner.invoke(app, ["advance", session_id, "--dry-run", "-c", str(config_path)])
        assert result.exit_code == 0, result.output
        assert "ACTIVE" in result.output

        result = runner.invoke(app, ["advance", session_id, "--auto", "-c", str(config_path)])
        assert result.exit_code == 0, result.output
        assert "COMPLETED" in result.output

        result = runner.invoke(app, ["show", session_id, "-c", str(config_path)])
        assert result.exit_code == 0
        assert "Winner:" in result.output

        result = runner.invoke(app, ["list", "--status", "COMPLETED", "-c", str(config_path)])
        assert result.exit_code == 0
        assert "(1 total)" in result.output

    def test_create_rejects_bad_size(self, config_path):
        result = runner.invoke(app, ["create", "w1", "w2", "w3", "-c", str(config_path)])
        assert result.exit_code == 1
        assert "Tournament requires" in result.output

    def test_show_missing(self, config_path):
        result = runner.invoke(app, ["show", "tournament-missing", "-c", str(config_path)])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_action(self, config_path):
        result = runner.invoke(
            app, ["advance", "tournament-x", "--action", "restart", "-c", str(config_path)]
        )
        assert result.exit_code == 1
