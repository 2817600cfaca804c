"""
Diagnosis data model.

Category         — enumerated symptom domains.
Diagnosis        — findings + ordered candidate fixes for one category or query.
DiagnosisBuilder — accumulates findings and fixes while a handler probes,
                   keeping fix ids unique within the diagnosis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from debdoctor.fixer.models import Fix

logger = logging.getLogger(__name__)


class Category(str, Enum):
    BOOT = "boot"
    NETWORK = "network"
    PERFORMANCE = "performance"
    DISK = "disk"
    SERVICES = "services"
    GRAPHICS = "graphics"
    AUDIO = "audio"
    PACKAGES = "packages"
    PERMISSIONS = "permissions"
    LOGS = "logs"
    HARDWARE = "hardware"
    SECURITY = "security"
    FILESYSTEM = "filesystem"


# Categories with a probing handler, in menu order.
STRUCTURED_CATEGORIES: tuple[Category, ...] = (
    Category.BOOT,
    Category.NETWORK,
    Category.DISK,
    Category.SERVICES,
    Category.PACKAGES,
    Category.PERMISSIONS,
    Category.FILESYSTEM,
    Category.PERFORMANCE,
    Category.LOGS,
)


@dataclass(frozen=True)
class Diagnosis:
    issue: str
    findings: tuple[str, ...]
    fixes: tuple[Fix, ...]


class DiagnosisBuilder:
    def __init__(self, issue: str) -> None:
        self.issue = issue
        self.findings: list[str] = []
        self.fixes: list[Fix] = []
        self._ids: set[str] = set()

    def finding(self, text: str) -> None:
        self.findings.append(text)

    def listing(self, header: str, items: Iterable[str], limit: int | None = None) -> None:
        """Append a header finding followed by '  - item' lines, optionally capped."""
        items = list(items)
        self.findings.append(header)
        shown = items if limit is None else items[:limit]
        for item in shown:
            self.findings.append(f"  - {item}")
        if limit is not None and len(items) > limit:
            self.findings.append(f"  ... and {len(items) - limit} more")

    def add_fix(self, fix: Fix) -> None:
        """Append fix in detection order. A repeated id is dropped."""
        if fix.id in self._ids:
            logger.debug("duplicate fix id %s dropped from %s", fix.id, self.issue)
            return
        self._ids.add(fix.id)
        self.fixes.append(fix)

    def build(self, overview: Iterable[Fix] = (), none_found: str | None = None) -> Diagnosis:
        """
        Freeze the diagnosis.

        overview fixes are appended last, unconditionally. none_found is added
        as a finding when the handler recorded nothing.
        """
        for fix in overview:
            self.add_fix(fix)
        if not self.findings and none_found:
            self.findings.append(none_found)
        return Diagnosis(
            issue=self.issue,
            findings=tuple(self.findings),
            fixes=tuple(self.fixes),
        )
