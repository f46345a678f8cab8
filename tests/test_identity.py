"""Tests for identity parsing and lock file serialization."""

from __future__ import annotations

import os

import pytest

from caffeinate2.identity import MAX_PID, MAX_START_TIME, Identity, format_registry, parse_registry


def test_parse_pid_and_start_time() -> None:
    assert Identity.parse("1234:1700000000\n") == Identity(1234, 1700000000)


def test_parse_bare_pid() -> None:
    """Bare PIDs are accepted without reuse protection."""
    identity = Identity.parse(" 42 ")
    assert identity == Identity(42, None)
    assert str(identity) == "42"


@pytest.mark.parametrize(
    "line",
    ["", "   ", "abc", "12:x", "-5", "0", "1:2:3", "7:-1", ":5", "5:", "+5", "1_0", "3:+7", "\u0661\u0662"],
)
def test_parse_rejects_malformed_lines(line: str) -> None:
    assert Identity.parse(line) is None


def test_parse_rejects_values_outside_platform_range() -> None:
    """PIDs must fit a signed 32-bit int and start times an unsigned 64-bit one."""
    assert Identity.parse(f"{MAX_PID}:1") == Identity(MAX_PID, 1)
    assert Identity.parse(f"{MAX_PID + 1}:1") is None
    assert Identity.parse("99999999999999999999:1") is None
    assert Identity.parse(f"7:{MAX_START_TIME}") == Identity(7, MAX_START_TIME)
    assert Identity.parse(f"7:{MAX_START_TIME + 1}") is None


def test_parse_registry_skips_garbage_and_duplicates() -> None:
    content = "10:100\nnot a pid\n\n10:100\n20\n30:300:extra\n"
    assert parse_registry(content) == {Identity(10, 100), Identity(20, None)}


def test_format_then_parse_returns_same_set() -> None:
    """Writing a well-formed set and reading it back yields the same set."""
    identities = {Identity(3, 30), Identity(1, 10), Identity(2, None)}
    content = format_registry(identities)
    assert content.endswith("\n")
    assert len(content.splitlines()) == 3
    assert parse_registry(content) == identities


def test_format_empty_registry() -> None:
    assert format_registry(set()) == ""


def test_current_identity_uses_probe(probe) -> None:
    probe.start_times[os.getpid()] = 1_700_000_123
    assert Identity.current(probe) == Identity(os.getpid(), 1_700_000_123)
    assert Identity.current() == Identity(os.getpid(), None)
