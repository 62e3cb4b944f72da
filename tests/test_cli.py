import json
import subprocess
import sys
import pathlib

from wavepanel import cli

PY = sys.executable
ROOT = pathlib.Path(__file__).resolve().parent.parent


def test_cli_no_args_help():
    proc = subprocess.run([PY, "-m", "wavepanel.cli"], capture_output=True, text=True, cwd=ROOT)
    assert proc.returncode == 2
    assert 'usage:' in (proc.stderr + proc.stdout).lower()


def test_units_auto_range(capsys):
    assert cli.main(["units", "127000"]) == 0
    assert capsys.readouterr().out.strip() == "127 kHz"
    assert cli.main(["units", "250", "--family", "voltage", "--unit", "mV"]) == 0
    assert capsys.readouterr().out.strip() == "250 mV"


def test_units_rejects_bad_input(capsys):
    assert cli.main(["units", "abc"]) == 2
    assert cli.main(["units", "1", "--unit", "V"]) == 2
    assert "Error" in capsys.readouterr().err


def test_features_listing(capsys):
    assert cli.main(["features"]) == 0
    out = capsys.readouterr().out
    assert "burst" in out and "psk" in out
    assert cli.main(["features", "burst"]) == 0
    detail = capsys.readouterr().out
    assert ":SOUR{ch}:BURS:STAT ON" in detail
    assert "cycles" in detail


def test_config_dump(capsys):
    assert cli.main(["config-dump"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["debounce_ms"] == 500


def test_gui_without_qt(monkeypatch, capsys):
    monkeypatch.setattr(cli, "HAVE_QT", False)
    assert cli.main(["gui"]) == 4


def test_sweep_points_output(capsys):
    assert cli.main(["sweep", "--start", "10", "--stop", "100", "--points", "4"]) == 0
    assert capsys.readouterr().out.split() == ["10.0", "40.0", "70.0", "100.0"]
    assert cli.main(["sweep", "--start", "0", "--stop", "100", "--points", "3",
                     "--mode", "LOG"]) == 2
    assert "Error" in capsys.readouterr().err
