"""
APT / dpkg package health.

PackagesCheck — half-installed (iU) or half-configured (iF) packages are an
ERROR; the number of upgradable packages is reported as detail.
"""

from __future__ import annotations

from debdoctor.checks.base import BaseCheck, Finding


def parse_broken_packages(dpkg_list: str) -> list[str]:
    """Names of packages whose `dpkg -l` status is iU or iF, in listing order."""
    broken: list[str] = []
    for line in dpkg_list.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0] in ("iU", "iF") and fields[1] not in broken:
            broken.append(fields[1])
    return broken


def count_upgradable(apt_list: str) -> int:
    return sum(1 for line in apt_list.splitlines() if "[upgradable from:" in line)


class PackagesCheck(BaseCheck):
    name = "Package System"

    def run(self) -> Finding:
        if not self.has_tool("dpkg"):
            return self._info("dpkg not found — not a Debian-based system?")

        rc, out, _ = self.shell(["dpkg", "-l"], timeout=20)
        if rc != 0:
            return self._info("Could not list installed packages")
        broken = parse_broken_packages(out)

        details: list[str] = []
        rc, out, _ = self.shell(["apt", "list", "--upgradable"], timeout=30)
        if rc == 0:
            details.append(f"{count_upgradable(out)} package(s) can be upgraded")

        if broken:
            return self._error(
                f"{len(broken)} broken package{'s' if len(broken) != 1 else ''}",
                [*broken, *details],
            )
        return self._info("No broken packages", details)

