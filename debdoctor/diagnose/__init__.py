"""
Fix catalog: turns a category or a free-text description into a Diagnosis.

Modules:
  models.py  — Category, Diagnosis, DiagnosisBuilder.
  probes.py  — subprocess probe helpers; failures mean "no finding".
  custom.py  — keyword-driven free-text diagnosis.
  <category>.py — one probing handler per structured category.
"""

from __future__ import annotations

from typing import Callable

from debdoctor.diagnose.models import STRUCTURED_CATEGORIES, Category, Diagnosis


def _handlers() -> dict[Category, Callable[[], Diagnosis]]:
    from debdoctor.diagnose.boot import diagnose_boot
    from debdoctor.diagnose.disk import diagnose_disk
    from debdoctor.diagnose.filesystem import diagnose_filesystem
    from debdoctor.diagnose.logs import diagnose_logs
    from debdoctor.diagnose.network import diagnose_network
    from debdoctor.diagnose.packages import diagnose_packages
    from debdoctor.diagnose.performance import diagnose_performance
    from debdoctor.diagnose.permissions import diagnose_permissions
    from debdoctor.diagnose.services import diagnose_services

    return {
        Category.BOOT: diagnose_boot,
        Category.NETWORK: diagnose_network,
        Category.DISK: diagnose_disk,
        Category.SERVICES: diagnose_services,
        Category.PACKAGES: diagnose_packages,
        Category.PERMISSIONS: diagnose_permissions,
        Category.FILESYSTEM: diagnose_filesystem,
        Category.PERFORMANCE: diagnose_performance,
        Category.LOGS: diagnose_logs,
    }


def diagnose(category: Category | str) -> Diagnosis:
    """
    Run the handler for a structured category.

    Raises ValueError for names that are not structured categories
    (graphics, audio, hardware and security only exist as keyword blocks).
    """
    cat = Category(category)
    if cat not in STRUCTURED_CATEGORIES:
        raise ValueError(f"no diagnosis handler for category '{cat.value}'")
    return _handlers()[cat]()


def diagnose_issue(text: str | None) -> Diagnosis:
    from debdoctor.diagnose.custom import diagnose_issue as _diagnose_issue
    return _diagnose_issue(text)


__all__ = ["Category", "Diagnosis", "STRUCTURED_CATEGORIES", "diagnose", "diagnose_issue"]
