"""
Tests for fixer/validator.py — structural checks and the destructive-pattern
denylist.
"""

import pytest

from debdoctor.errors import InvalidFix
from debdoctor.fixer.models import Fix
from debdoctor.fixer.validator import (
    DANGEROUS_PATTERNS,
    is_valid,
    partition_fixes,
    validate_fix,
)


def _fix(**kwargs) -> Fix:
    defaults = dict(id="f", title="Fix", description="d", commands=("apt-get update",))
    defaults.update(kwargs)
    return Fix(**defaults)


class TestValidateFix:
    def test_accepts_ordinary_fix(self):
        validate_fix(_fix())
        assert is_valid(_fix())

    def test_missing_descriptor(self):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(None)
        assert exc.value.reason == "missing descriptor"

    @pytest.mark.parametrize("title", ["", "   "])
    def test_missing_title(self, title):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(_fix(title=title))
        assert exc.value.reason == "missing title"

    def test_no_commands(self):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(_fix(commands=()))
        assert exc.value.reason == "no commands"

    @pytest.mark.parametrize("cmd", [
        "rm -rf /",
        "dd if=/dev/zero of=/dev/sda",
        "mkfs.ext4 /dev/sda1",
        "fdisk /dev/sda",
        "parted /dev/sda rm 1",
    ])
    def test_dangerous_commands_rejected(self, cmd):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(_fix(commands=("echo ok", cmd)))
        assert exc.value.reason == "dangerous command detected"
        assert exc.value.command == cmd

    def test_denylist_is_case_insensitive(self):
        with pytest.raises(InvalidFix):
            validate_fix(_fix(commands=("MKFS /dev/sdb1",)))

    def test_redirect_to_device_rejected(self):
        with pytest.raises(InvalidFix):
            validate_fix(_fix(commands=("echo x > /dev/sda",)))

    def test_denylist_contents(self):
        assert set(DANGEROUS_PATTERNS) == {"rm -rf /", "dd if=", "mkfs", "fdisk", "parted", "> /dev/"}

    def test_first_failure_wins(self):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(_fix(title="", commands=()))
        assert exc.value.reason == "missing title"

    def test_reversible_needs_one_reverse_per_command(self):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(_fix(commands=("a", "b"), reversible=True, reverse_commands=("x",)))
        assert exc.value.reason == "incomplete reverse commands"

    def test_reversible_with_empty_entries_is_valid(self):
        validate_fix(_fix(commands=("a", "b"), reversible=True, reverse_commands=("", "undo b")))

    def test_message_format(self):
        with pytest.raises(InvalidFix) as exc:
            validate_fix(_fix(commands=("dd if=/dev/zero",)))
        assert str(exc.value) == "InvalidFix: dangerous command detected: dd if=/dev/zero"


class TestPartitionFixes:
    def test_preserves_order_and_reports_reasons(self):
        good_a = _fix(id="a")
        bad = _fix(id="bad", commands=("mkfs /dev/sda",))
        good_b = _fix(id="b")
        valid, rejected = partition_fixes([good_a, bad, good_b])
        assert [f.id for f in valid] == ["a", "b"]
        assert [(f.id, e.reason) for f, e in rejected] == [("bad", "dangerous command detected")]
