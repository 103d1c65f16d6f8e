"""Tests for the transfer-engine command line."""

import json

import pytest

from transfer_api.cli import main
from transfer_kernel.db.engine import reset_engine


@pytest.fixture
def cli_database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.delenv("TRANSFER_ENGINE_CONFIG", raising=False)
    yield
    reset_engine()


def test_init_db_then_settle(cli_database, capsys):
    assert main(["init-db"]) == 0
    assert "Database schema created" in capsys.readouterr().out

    assert main(["settle"]) == 0
    report = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert report == {"completed": 0, "failed": 0, "expired": 0, "error": False}


def test_missing_overlay_exits_2(cli_database, tmp_path, capsys):
    assert main(["--config", str(tmp_path / "absent.yaml"), "init-db"]) == 2
    assert capsys.readouterr().err.startswith("ERROR:")


def test_invalid_overlay_exits_2(cli_database, tmp_path, capsys):
    overlay = tmp_path / "bad.yaml"
    overlay.write_text("workflow:\n  approval_window_hours: -1\n")
    assert main(["--config", str(overlay), "init-db"]) == 2


def test_command_required():
    with pytest.raises(SystemExit):
        main([])
