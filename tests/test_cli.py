"""Tests de la CLI (click CliRunner)."""

import logging

import pytest
from click.testing import CliRunner

from cli import cli
from loader.utils.structured_logging import metrics


@pytest.fixture(autouse=True)
def restore_logging():
    """`load` reconfigure le root logger: on restaure l'état initial."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    metrics.reset()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    metrics.reset()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def test_init_db(database_url):
    runner = CliRunner()

    result = runner.invoke(cli, ["init-db", "--database-url", database_url])

    assert result.exit_code == 0
    assert "Base initialisée" in result.output


def test_load_then_stats(database_url):
    runner = CliRunner()

    result = runner.invoke(cli, [
        "load",
        "--ehr", "2",
        "--composition-per-ehr", "2",
        "--workers", "2",
        "--zone-id", "Europe/Berlin",
        "--database-url", database_url,
    ])

    assert result.exit_code == 0, result.output
    assert "2 EHR et 4 compositions" in result.output
    assert "insert_composition" in result.output

    result = runner.invoke(cli, ["stats", "--database-url", database_url])

    assert result.exit_code == 0
    assert "EHR: 2" in result.output
    assert "Compositions: 4" in result.output
    assert "Templates: 4" in result.output


def test_load_rejects_invalid_count(database_url):
    runner = CliRunner()

    result = runner.invoke(cli, ["load", "--ehr", "0", "--database-url", database_url])

    assert result.exit_code == 1
