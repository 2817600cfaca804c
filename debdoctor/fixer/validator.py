"""
Static, pre-execution validation of Fix descriptors.

Checks run in order and the first failure wins:
  1. descriptor present
  2. title non-empty
  3. at least one command
  4. no command contains a known-destructive fragment (case-insensitive)
  5. a reversible fix has one reverse entry per forward command

The denylist is a literal substring match. It catches known-catastrophic
patterns, not indirection through variables or scripts — it is not a sandbox.
"""

from __future__ import annotations

from typing import Iterable

from debdoctor.errors import InvalidFix
from debdoctor.fixer.models import Fix


DANGEROUS_PATTERNS: tuple[str, ...] = (
    "rm -rf /",
    "dd if=",
    "mkfs",
    "fdisk",
    "parted",
    "> /dev/",
)


def validate_fix(fix: Fix | None) -> None:
    """Raise InvalidFix if fix must not be offered or executed. Pure."""
    if fix is None:
        raise InvalidFix("missing descriptor")

    if not fix.title or not fix.title.strip():
        raise InvalidFix("missing title")

    if not fix.commands:
        raise InvalidFix("no commands")

    for cmd in fix.commands:
        lowered = cmd.lower()
        for pattern in DANGEROUS_PATTERNS:
            if pattern in lowered:
                raise InvalidFix("dangerous command detected", cmd)

    if fix.reversible and len(fix.reverse_commands) != len(fix.commands):
        raise InvalidFix(
            "incomplete reverse commands",
            f"{len(fix.reverse_commands)} reverse for {len(fix.commands)} forward",
        )


def is_valid(fix: Fix | None) -> bool:
    try:
        validate_fix(fix)
    except InvalidFix:
        return False
    return True


def partition_fixes(fixes: Iterable[Fix]) -> tuple[list[Fix], list[tuple[Fix, InvalidFix]]]:
    """Split fixes into (valid, [(rejected, reason), ...]) preserving order."""
    valid: list[Fix] = []
    rejected: list[tuple[Fix, InvalidFix]] = []
    for fix in fixes:
        try:
            validate_fix(fix)
        except InvalidFix as e:
            rejected.append((fix, e))
        else:
            valid.append(fix)
    return valid, rejected
