"""
systemd service health (root only).

ServicesCheck — any failed service unit is an ERROR.
"""

from __future__ import annotations

from debdoctor.checks.base import BaseCheck, Finding


class ServicesCheck(BaseCheck):
    name = "System Services"
    requires_root = True

    def run(self) -> Finding:
        if not self.has_tool("systemctl"):
            return self._info("systemctl not available — not a systemd host")

        rc, out, _ = self.shell([
            "systemctl", "list-units", "--failed", "--type=service",
            "--no-legend", "--plain",
        ])
        if rc != 0:
            return self._info("Could not query systemd")

        failed = [line.split()[0] for line in out.splitlines() if line.strip()]
        if failed:
            return self._error(
                f"{len(failed)} failed service{'s' if len(failed) != 1 else ''}",
                failed,
            )
        return self._info("No failed services")

