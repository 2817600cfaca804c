"""
Core data model for debdoctor checks.

Severity         — ordered INFO < WARNING < ERROR < CRITICAL.
Finding          — the immutable fact every check must return.
BaseCheck        — abstract base class all checks inherit from.
ResultAggregator — collects Findings into error / warning / info views.

This file is the single source of truth for the data shape.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Iterable

from debdoctor.system_info import IS_ROOT

logger = logging.getLogger(__name__)


# ── Data model ────────────────────────────────────────────────────────────────

class Severity(IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Finding:
    name: str                   # "Disk Space"
    severity: Severity
    message: str                # Short: "Disk usage high: 91%"
    details: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)


def overall_severity(findings: Iterable[Finding]) -> Severity:
    """Return the highest severity among findings (INFO when there are none)."""
    return max((f.severity for f in findings), default=Severity.INFO)


# ── Aggregation ───────────────────────────────────────────────────────────────

class ResultAggregator:
    """
    Accumulates Findings from any number of checks.

    add_result() is the only mutator. Insertion order is preserved and
    identical findings are kept — presentation layers may dedupe.
    One aggregator is created per run and handed to whoever produces results.
    """

    def __init__(self) -> None:
        self._findings: list[Finding] = []

    def add_result(self, finding: Finding) -> None:
        self._findings.append(finding)

    @property
    def all(self) -> list[Finding]:
        return list(self._findings)

    @property
    def errors(self) -> list[Finding]:
        """ERROR and CRITICAL findings."""
        return [f for f in self._findings if f.severity >= Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self._findings if f.severity == Severity.WARNING]

    @property
    def info(self) -> list[Finding]:
        return [f for f in self._findings if f.severity == Severity.INFO]

    @property
    def severity(self) -> Severity:
        return overall_severity(self._findings)

    def __len__(self) -> int:
        return len(self._findings)


# ── Base class ────────────────────────────────────────────────────────────────

class BaseCheck(ABC):
    """
    Abstract base class for all debdoctor checks.

    Subclasses must:
      1. Set class attributes (name, requires_root)
      2. Override run() to return a Finding

    run() is only called when the root requirement is satisfied. Any
    exception escaping run() is turned into an ERROR finding by execute().
    """

    name: str = "Base Check"
    requires_root: bool = False

    # ── Public API ────────────────────────────────────────────────────────────

    def execute(self, is_root: bool = IS_ROOT) -> Finding:
        """
        Gate-check then delegate to run().

        Call this from the orchestrator — not run() directly.
        """
        if self.requires_root and not is_root:
            return self._info("Skipped: requires root privileges")

        # Safety net — one bad check must never crash the whole scan
        try:
            return self.run()
        except Exception as e:
            logger.debug("check %s crashed", self.name, exc_info=True)
            return self._error(f"Unexpected error in {self.name}: {e}")

    @abstractmethod
    def run(self) -> Finding:
        """
        Implement the actual check here.

        Must:
        - Use self.shell() for subprocess calls (timeouts handled there)
        - Return a Finding on every code path
        - Never output to stdout/stderr directly
        """

    # ── Helper methods ────────────────────────────────────────────────────────

    def has_tool(self, tool: str) -> bool:
        """Return True if tool is available in PATH."""
        return shutil.which(tool) is not None

    def shell(
        self,
        cmd: list[str],
        timeout: int = 10,
    ) -> tuple[int, str, str]:
        """
        Run a subprocess safely and return its output.

        Returns:
            (returncode, stdout, stderr) — all strings, never None.
            On timeout or missing binary, returncode is -1 and stderr
            contains a human-readable error description.
        """
        # C locale keeps output parseable regardless of the system language.
        _env = {**os.environ, "LANG": "C", "LC_ALL": "C"}
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
                env=_env,
            )
            return result.returncode, result.stdout, result.stderr
        except subprocess.TimeoutExpired:
            return -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"
        except FileNotFoundError:
            return -1, "", f"Command not found: {cmd[0]}"
        except Exception as e:
            return -1, "", str(e)

    def _result(
        self,
        severity: Severity,
        message: str,
        details: Iterable[str] | None = None,
    ) -> Finding:
        return Finding(
            name=self.name,
            severity=severity,
            message=message,
            details=tuple(details or ()),
        )

    def _info(self, message: str, details: Iterable[str] | None = None) -> Finding:
        return self._result(Severity.INFO, message, details)

    def _warning(self, message: str, details: Iterable[str] | None = None) -> Finding:
        return self._result(Severity.WARNING, message, details)

    def _error(self, message: str, details: Iterable[str] | None = None) -> Finding:
        return self._result(Severity.ERROR, message, details)

    def _critical(self, message: str, details: Iterable[str] | None = None) -> Finding:
        return self._result(Severity.CRITICAL, message, details)


def run_checks(checks: Iterable[BaseCheck], aggregator: ResultAggregator,
               is_root: bool = IS_ROOT) -> ResultAggregator:
    """Run checks one after another, feeding every Finding into aggregator."""
    for check in checks:
        finding = check.execute(is_root=is_root)
        logger.info("%s: [%s] %s", check.name, finding.severity.label, finding.message)
        aggregator.add_result(finding)
    return aggregator
