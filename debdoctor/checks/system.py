"""
Host and memory checks.

Checks:
  - SystemInfoCheck — hostname, kernel, distribution, uptime (always INFO)
  - MemoryCheck     — RAM usage via psutil, swap usage as detail
"""

from __future__ import annotations

import psutil

from debdoctor.checks.base import BaseCheck, Finding
from debdoctor.system_info import get_system_info


# ── System information ────────────────────────────────────────────────────────

class SystemInfoCheck(BaseCheck):
    """Report what we are running on. Never fails."""

    name = "System Information"

    def run(self) -> Finding:
        info = get_system_info()
        details = [
            f"Hostname: {info['hostname']}",
            f"Kernel: {info['kernel']}",
            f"Distribution: {info['distribution']}",
        ]
        if info["uptime"]:
            details.append(f"Uptime: {info['uptime']}")
        if info["distro_id"] and info["distro_id"] != "debian":
            details.append(f"Note: {info['distro_id']} is Debian-based, results may vary")
        return self._info(f"{info['distribution']} on {info['machine']}", details)


# ── Memory ────────────────────────────────────────────────────────────────────

class MemoryCheck(BaseCheck):
    """RAM usage: >95% CRITICAL, >85% WARNING."""

    name = "Memory Usage"

    def run(self) -> Finding:
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()

        details = [
            f"Total: {_gib(mem.total)}",
            f"Available: {_gib(mem.available)}",
        ]
        if swap.total:
            details.append(f"Swap: {swap.percent:.0f}% of {_gib(swap.total)} used")
        else:
            details.append("Swap: none configured")

        msg = f"Memory usage: {mem.percent:.0f}%"
        if mem.percent > 95:
            return self._critical(f"{msg} — system is close to running out of RAM", details)
        if mem.percent > 85:
            return self._warning(msg, details)
        return self._info(msg, details)


def _gib(n_bytes: int) -> str:
    return f"{n_bytes / 1024 ** 3:.1f} GiB"

