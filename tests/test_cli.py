"""Tests for the graphmem CLI."""

import orjson
import pytest
from typer.testing import CliRunner

from graphmem_lite.cli import app

runner = CliRunner()


@pytest.fixture
def seeded(manager, config, monkeypatch, make_entity, make_relation):
    """A memory file holding two related entities; returns its path."""
    monkeypatch.setenv("GRAPHMEM_LITE_DATA_DIR", str(config.data_dir))
    manager.create_entities([make_entity("Ada", ["wrote programs"]), make_entity("Engine", ["wrote programs"])])
    manager.create_relations([make_relation("Ada", "Engine", "programmed")])
    return str(config.memory_file)


class TestCli:
    """Test CLI commands against a real memory file."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "GraphMem Lite" in result.output

    def test_stats_json(self, seeded):
        result = runner.invoke(app, ["stats", "--json", "-f", seeded])
        assert result.exit_code == 0
        assert '"totalEntities": 2' in result.output

    def test_search_does_not_record_access(self, seeded, config):
        result = runner.invoke(app, ["search", "programs", "-f", seeded])
        assert result.exit_code == 0
        assert "Ada" in result.output
        records = [orjson.loads(line) for line in config.memory_file.read_bytes().splitlines()]
        assert all(r.get("accessCount", 0) == 0 for r in records if r["type"] == "entity")

    def test_search_no_match(self, seeded):
        result = runner.invoke(app, ["search", "zzz", "-f", seeded])
        assert result.exit_code == 0
        assert "No entities match" in result.output

    def test_show(self, seeded):
        result = runner.invoke(app, ["show", "Ada", "Engine", "-f", seeded])
        assert result.exit_code == 0
        assert "programmed" in result.output

    def test_show_missing(self, seeded):
        result = runner.invoke(app, ["show", "Ghost", "-f", seeded])
        assert result.exit_code == 1

    def test_timeline_unknown_entity(self, seeded):
        result = runner.invoke(app, ["timeline", "Ghost", "-f", seeded])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_optimize(self, seeded):
        result = runner.invoke(app, ["optimize", "-f", seeded])
        assert result.exit_code == 0
        assert "Optimized:" in result.output

    def test_summary(self, seeded):
        result = runner.invoke(app, ["summary", "-f", seeded])
        assert result.exit_code == 0
        assert "Knowledge graph with 2 entities" in result.output
