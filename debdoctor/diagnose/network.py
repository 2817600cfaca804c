"""Network diagnosis: network manager state, interfaces, DNS, default route."""

from __future__ import annotations

import socket

import psutil

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import probe, run_probe
from debdoctor.fixer.models import Fix, common_fix

DNS_TEST_HOST = "deb.debian.org"

# Any one of these being active means something manages the interfaces.
NETWORK_SERVICES = ("networking", "NetworkManager", "systemd-networkd")


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(lambda: None)
def network_service_active() -> bool | None:
    """True if any network service is active, None when systemd is unavailable."""
    for service in NETWORK_SERVICES:
        # is-active exits 3 for inactive units; the state word is what matters.
        state = run_probe(["systemctl", "is-active", service], any_exit=True).strip()
        if state == "active":
            return True
    return False


@probe(list)
def down_interfaces() -> list[str]:
    return sorted(
        name for name, st in psutil.net_if_stats().items()
        if not st.isup and name != "lo"
    )


@probe(lambda: True)
def dns_resolves(host: str = DNS_TEST_HOST) -> bool:
    try:
        socket.getaddrinfo(host, None)
    except socket.gaierror:
        return False
    return True


@probe(lambda: True)
def has_default_route() -> bool:
    return bool(run_probe(["ip", "route", "show", "default"]).strip())


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_network() -> Diagnosis:
    b = DiagnosisBuilder("Network Issues")

    if network_service_active() is False:
        b.finding("No network service (networking, NetworkManager, systemd-networkd) is active")
        b.add_fix(common_fix("restart_networking"))

    down = down_interfaces()
    if down:
        b.finding(f"Interfaces down: {', '.join(down)}")
        for iface in down:
            b.add_fix(Fix(
                id=f"bring_up_{iface}",
                title=f"Bring Up Interface {iface}",
                description=f"Sets link {iface} administratively up",
                commands=(f"ip link set {iface} up",),
                requires_root=True,
                reversible=True,
                reverse_commands=(f"ip link set {iface} down",),
            ))

    if not dns_resolves():
        b.finding(f"DNS resolution failed for {DNS_TEST_HOST}")
        b.add_fix(common_fix("flush_dns"))

    if not has_default_route():
        b.finding("No default route configured: traffic cannot leave the local network")
        b.add_fix(Fix(
            id="show_routing",
            title="Show Routing Table",
            description="Shows routes and addresses so the missing gateway can be identified",
            commands=("ip route show", "ip -4 addr show"),
        ))

    return b.build(
        overview=[Fix(
            id="network_overview",
            title="Network Overview",
            description="Shows interfaces, routes, resolver configuration and a ping test",
            commands=(
                "ip addr show",
                "ip route show",
                "cat /etc/resolv.conf",
                "ping -c 3 8.8.8.8",
            ),
        )],
        none_found="No network issues detected",
    )
