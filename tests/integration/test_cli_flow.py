"""Integration tests for the CLI against a YAML config and on-disk SQLite."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from crypto_stats.cli import cli

pytestmark = pytest.mark.integration


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "crypto-stats.yml"
    path.write_text(
        "storage:\n"
        f"  sqlite_path: {tmp_path / 'cli' / 'snapshots.db'}\n"
        "ingestion:\n"
        "  retry_delay: 0\n"
    )
    return str(path)


class TestCliFlow:
    def test_ingest_then_query(self, coingecko, config_file, monkeypatch):
        monkeypatch.delenv("CRYPTO_STATS_CONFIG", raising=False)
        runner = CliRunner()

        for _ in range(2):
            result = runner.invoke(cli, ["--config", config_file, "ingest"])
            assert result.exit_code == 0, result.output
            assert "Stored 3 snapshots" in result.output

        result = runner.invoke(
            cli, ["--config", config_file, "deviation", "--coin", "bitcoin", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"deviation": 0.0, "sample_size": 2, "mean": 40000.0}

        result = runner.invoke(cli, ["--config", config_file, "status"])
        assert result.exit_code == 0
        assert "bitcoin snapshots" in result.output
        assert coingecko.call_count == 2

    def test_env_var_selects_config(self, coingecko, config_file, monkeypatch):
        monkeypatch.setenv("CRYPTO_STATS_CONFIG", config_file)
        result = CliRunner().invoke(cli, ["ingest"])
        assert result.exit_code == 0, result.output
