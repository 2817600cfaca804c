"""
Disk and filesystem checks.

Checks:
  - DiskSpaceCheck  — root filesystem usage
  - FilesystemCheck — real filesystems mounted read-only
"""

from __future__ import annotations

import psutil

from debdoctor.checks.base import BaseCheck, Finding
from debdoctor.system_info import PROC_MOUNTS, read_only_mounts


class DiskSpaceCheck(BaseCheck):
    """Root filesystem usage: >95% CRITICAL, >85% WARNING."""

    name = "Disk Space"
    path = "/"

    def run(self) -> Finding:
        usage = psutil.disk_usage(self.path)
        free_gb = usage.free / 1024 ** 3
        details = [f"Free: {free_gb:.1f} GiB of {usage.total / 1024 ** 3:.1f} GiB"]

        msg = f"Disk usage on {self.path}: {usage.percent:.0f}%"
        if usage.percent > 95:
            return self._critical(f"{msg} — nearly full", details)
        if usage.percent > 85:
            return self._warning(msg, details)
        return self._info(msg, details)


class FilesystemCheck(BaseCheck):
    """Any real filesystem mounted read-only is an ERROR."""

    name = "Filesystem Mounts"

    def run(self) -> Finding:
        try:
            text = PROC_MOUNTS.read_text()
        except OSError:
            return self._info("Could not read the mount table")

        ro = read_only_mounts(text)
        if ro:
            return self._error(
                f"{len(ro)} filesystem{'s' if len(ro) != 1 else ''} mounted read-only",
                ro,
            )
        return self._info("All filesystems are mounted read-write")

