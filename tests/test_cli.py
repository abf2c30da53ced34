# tests/test_cli.py
"""
Tests de la CLI (`python -m tradejournal`) sobre un data_dir temporal, sin red.
"""

import json

import pytest

from tradejournal.__main__ import main
from tradejournal.store import TradeStore


@pytest.fixture
def run(tmp_path):
    data_dir = tmp_path / "data"

    def _run(*argv):
        return main(["--data-dir", str(data_dir), "--user", "alice", *argv])

    _run.data_dir = data_dir
    return _run


ADD_BBCA = [
    "add", "--ticker", "bbca", "--asset-type", "Stock", "--strategy", "Breakout",
    "--entry", "100", "--exit", "120", "--size", "10", "--commission", "5",
    "--close", "2025-01-10T09:00:00Z",
]


def test_add_then_history(run, capsys):
    assert run(*ADD_BBCA) == 0
    assert "Trade guardado" in capsys.readouterr().out

    assert run("history") == 0
    out = capsys.readouterr().out
    assert "BBCA" in out and "$195.00" in out and "Breakout" in out


def test_add_reuses_last_trade_as_template(run, capsys):
    run(*ADD_BBCA)
    capsys.readouterr()
    rc = run("add", "--ticker", "BBCA", "--entry", "100", "--exit", "90", "--size", "1")
    assert rc == 0
    out = capsys.readouterr().out
    assert "Stock" in out and "Breakout" in out

    latest = TradeStore(run.data_dir).latest_trade_for_ticker("alice", "BBCA")
    assert latest.asset_type == "Stock" and latest.strategy == "Breakout"
    assert latest.exit_price == 90.0


def test_validation_error_exit_code(run, capsys):
    rc = run("add", "--ticker", "AAA", "--asset-type", "Crypto", "--entry", "5", "--exit", "5", "--size", "1")
    assert rc == 2
    assert "exit_price" in capsys.readouterr().out
    assert TradeStore(run.data_dir).list_trades("alice") == []


def test_quick_and_dashboard(run, capsys):
    assert run("quick", "--ticker", "tlkm", "--position", "Short", "--pnl", "250") == 0
    assert run("quick", "--ticker", "goto", "--pnl", "-50") == 0
    capsys.readouterr()

    assert run("dashboard", "--no-rate") == 0
    out = capsys.readouterr().out
    assert "Equity (P&L neto)" in out
    assert "$200.00" in out
    assert "TLKM" in out and "GOTO" in out


def test_dashboard_without_closed_trades(run, capsys):
    assert run("dashboard", "--no-rate") == 0
    assert "Sin trades cerrados" in capsys.readouterr().out


def test_delete_unknown_trade(run, capsys):
    assert run("delete", "nope") == 1
    assert "nope" in capsys.readouterr().out


def test_template_command(run, capsys):
    run(*ADD_BBCA)
    capsys.readouterr()
    assert run("template", "bbca") == 0
    assert "strategy=Breakout" in capsys.readouterr().out


def test_export_writes_reports_and_manifest(run, tmp_path):
    run(*ADD_BBCA)
    out_dir = tmp_path / "out"
    assert run("export", "--output-dir", str(out_dir), "--no-rate") == 0

    for name in ("trades.csv", "equity_curve.csv", "summary.json", "run_manifest.json"):
        assert (out_dir / name).exists(), name

    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["config_effective"]["user"] == "alice"
    assert manifest["metrics"]["total_net_pnl"] == pytest.approx(195)
    assert manifest["metrics"]["display"]["currency"] == "IDR"


def test_yaml_config_sets_user(tmp_path, capsys):
    cfg = tmp_path / "journal.yaml"
    cfg.write_text(f"user: bob\ndata_dir: {tmp_path / 'yaml-data'}\n", encoding="utf-8")
    assert main(["--config", str(cfg), "quick", "--ticker", "AAA", "--pnl", "10"]) == 0
    assert len(TradeStore(tmp_path / "yaml-data").list_trades("bob")) == 1


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["--config", str(tmp_path / "nope.yaml"), "history"])
