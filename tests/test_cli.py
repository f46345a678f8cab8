"""End-to-end tests for the caffeinate2 command line in dry-run mode."""

from __future__ import annotations

from datetime import timedelta
import logging
from pathlib import Path
import sys

import pytest

from caffeinate2.cli import assertion_kinds, build_guard, describe, main, parse_args
from caffeinate2.config import Settings
from caffeinate2.identity import parse_registry
from caffeinate2.power import NullSleepToggle


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for key in ("LOCK_FILE", "TRACK_START_TIME", "VERBOSE", "SLEEP_TOGGLE", "LOG_FILE"):
        monkeypatch.delenv(f"CAFFEINATE2_{key}", raising=False)


def test_parse_command_and_options() -> None:
    args = parse_args(["-v", "-e", "-t", "1h 30m", "make", "-j4"])
    assert args.verbose and args.entirely
    assert args.timeout == timedelta(minutes=90)
    assert args.command == ["make", "-j4"]


def test_invalid_timeout_is_a_usage_error(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["-t", "soon"])
    assert excinfo.value.code == 2
    assert "Timeout isn't a valid duration or number!" in capsys.readouterr().err


def test_unsleepable_timeout_is_a_usage_error(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["-t", "1000 years"])
    assert excinfo.value.code == 2
    assert "Timeout is too large!" in capsys.readouterr().err


def test_invalid_pid_is_a_usage_error() -> None:
    with pytest.raises(SystemExit):
        parse_args(["-w", "0"])


def test_idle_assertion_is_default() -> None:
    assert assertion_kinds(parse_args([])) == ["idle"]
    assert assertion_kinds(parse_args(["-e"])) == []
    assert assertion_kinds(parse_args(["-d", "-s"])) == ["display", "system"]


def test_describe_messages() -> None:
    assert describe(parse_args(["ls"])) == "Preventing sleep until command finishes."
    assert describe(parse_args(["-w", "12"])) == "Preventing sleep until process 12 exits."
    assert describe(parse_args(["-t", "90"])) == "Preventing sleep for 90 seconds."
    assert describe(parse_args([])) == "Preventing sleep until Ctrl+C pressed."


def test_dry_run_guard_does_not_touch_system(tmp_path: Path) -> None:
    settings = Settings(lock_file=tmp_path / "x.lock")
    guard = build_guard(parse_args(["-e", "--dry-run"]), settings, logging.getLogger("test"))
    assert guard.global_toggle
    assert isinstance(guard.sleep_toggle, NullSleepToggle)
    assert guard.store.path == tmp_path / "x.lock"


def test_entirely_with_timeout_registers_and_releases(tmp_path: Path, capsys) -> None:
    """A full run leaves the lock file in place but empty."""
    lock_file = tmp_path / "shared.lock"
    status = main(["-e", "--dry-run", "--lock-file", str(lock_file), "-t", "0"])
    assert status == 0
    assert lock_file.exists()
    assert parse_registry(lock_file.read_text(encoding="utf-8")) == set()
    assert "Preventing sleep for 0 seconds." in capsys.readouterr().out


def test_command_exit_status_is_propagated(tmp_path: Path, capsys) -> None:
    lock_file = tmp_path / "shared.lock"
    script = "import sys; print('from child'); sys.exit(4)"
    status = main(["-e", "--dry-run", "--lock-file", str(lock_file), sys.executable, "-c", script])
    assert status == 4
    assert "from child" in capsys.readouterr().out
    assert lock_file.read_text(encoding="utf-8") == ""


def test_missing_command(tmp_path: Path) -> None:
    status = main(["-e", "--dry-run", "--lock-file", str(tmp_path / "l"), "definitely-not-a-command-xyz"])
    assert status == 127


def test_unusable_lock_file_fails_acquisition(tmp_path: Path, capsys) -> None:
    """Acquisition errors are reported and give a non-zero exit."""
    status = main(["-e", "--dry-run", "--lock-file", str(tmp_path / "missing" / "x.lock"), "-t", "0"])
    assert status == 1
    assert "cannot open lockfile" in capsys.readouterr().err


def test_bad_config_file(tmp_path: Path, capsys) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("nonsense: true\n", encoding="utf-8")
    assert main(["--config", str(config), "-t", "0"]) == 2
    assert "Unknown config key" in capsys.readouterr().err
