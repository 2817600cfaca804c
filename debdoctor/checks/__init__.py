"""
System checks for debdoctor.

Each module holds one or two BaseCheck subclasses.
all_checks() instantiates them in report order.
"""

from __future__ import annotations

from debdoctor.checks.base import BaseCheck


def all_checks(is_root: bool) -> list[BaseCheck]:
    """
    Return instantiated checks in report order:
      system info → disk space → memory → network → logs → packages
      → filesystem → services

    Root-only checks are left out when the process is not elevated.
    """
    from debdoctor.checks.disk import DiskSpaceCheck, FilesystemCheck
    from debdoctor.checks.logs import LogsCheck
    from debdoctor.checks.network import NetworkCheck
    from debdoctor.checks.packages import PackagesCheck
    from debdoctor.checks.services import ServicesCheck
    from debdoctor.checks.system import MemoryCheck, SystemInfoCheck

    classes: list[type[BaseCheck]] = [
        SystemInfoCheck,
        DiskSpaceCheck,
        MemoryCheck,
        NetworkCheck,
        LogsCheck,
        PackagesCheck,
        FilesystemCheck,
        ServicesCheck,
    ]
    return [cls() for cls in classes if is_root or not cls.requires_root]
