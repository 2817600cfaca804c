"""
System log check.

LogsCheck — error-priority journal entries from the last 24 hours.
"""

from __future__ import annotations

from debdoctor.checks.base import BaseCheck, Finding

ERROR_THRESHOLD = 100


class LogsCheck(BaseCheck):
    name = "System Logs"

    def run(self) -> Finding:
        if not self.has_tool("journalctl"):
            return self._info("journalctl not available — log check skipped")

        rc, out, err = self.shell(
            ["journalctl", "-p", "err", "--since=-24h", "--no-pager", "-q", "-o", "cat"],
            timeout=20,
        )
        if rc != 0:
            return self._info("Could not read the system journal", [err.strip()] if err.strip() else None)

        lines = [line for line in out.splitlines() if line.strip()]
        count = len(lines)
        if count > ERROR_THRESHOLD:
            return self._warning(
                f"{count} error entries in the journal in the last 24h",
                lines[-5:],
            )
        return self._info(f"{count} error entr{'ies' if count != 1 else 'y'} in the journal in the last 24h")

