"""
Network connectivity check.

NetworkCheck — non-loopback interfaces up (psutil) and DNS resolution.
No interface up is an ERROR; a DNS failure alone is a WARNING.
"""

from __future__ import annotations

import socket

import psutil

from debdoctor.checks.base import BaseCheck, Finding

DNS_TEST_HOST = "deb.debian.org"


class NetworkCheck(BaseCheck):
    name = "Network Connectivity"

    def run(self) -> Finding:
        stats = psutil.net_if_stats()
        up = sorted(name for name, st in stats.items() if st.isup and name != "lo")
        if not up:
            return self._error("No network interface is up")

        details = [f"Interfaces up: {', '.join(up)}"]
        if not _resolves(DNS_TEST_HOST):
            details.append(f"Could not resolve {DNS_TEST_HOST}")
            return self._warning("DNS resolution failed", details)
        return self._info(f"{len(up)} interface{'s' if len(up) != 1 else ''} up, DNS working", details)


def _resolves(host: str) -> bool:
    try:
        socket.getaddrinfo(host, None)
    except OSError:
        return False
    return True

