"""
Service diagnosis.

Looks at failed units, units stuck activating/deactivating, critical services
that are disabled, services restarting repeatedly (flapping) and masked
services.
"""

from __future__ import annotations

import json
from collections import Counter

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import probe, run_probe, unit_names
from debdoctor.fixer.models import Fix, RiskLevel

CRITICAL_SERVICES = ("ssh", "cron", "systemd-timesyncd", "systemd-resolved")
FLAPPING_STARTS_PER_HOUR = 5


# ── Probes ────────────────────────────────────────────────────────────────────

def _list_units(*args: str) -> str:
    return run_probe(["systemctl", *args, "--type=service", "--no-legend", "--plain", "--no-pager"])


@probe(list)
def failed_services() -> list[str]:
    return unit_names(_list_units("list-units", "--failed"))


@probe(list)
def transitioning_services() -> list[str]:
    return unit_names(_list_units("list-units", "--state=activating,deactivating"))


@probe(list)
def disabled_critical_services() -> list[str]:
    disabled = []
    for service in CRITICAL_SERVICES:
        # is-enabled prints nothing on stdout for units that do not exist.
        state = run_probe(["systemctl", "is-enabled", service], any_exit=True).strip()
        if state == "disabled":
            disabled.append(service)
    return disabled


@probe(list)
def masked_services() -> list[str]:
    return unit_names(_list_units("list-unit-files", "--state=masked"))


@probe(list)
def flapping_services() -> list[str]:
    """Services systemd started more than FLAPPING_STARTS_PER_HOUR times in the last hour."""
    out = run_probe(
        ["journalctl", "_PID=1", "--since=-1h", "--no-pager", "-o", "json",
         "--output-fields=UNIT,MESSAGE"],
        timeout=20,
    )
    return parse_flapping(out)


def parse_flapping(journal_json: str, threshold: int = FLAPPING_STARTS_PER_HOUR) -> list[str]:
    starts: Counter[str] = Counter()
    for line in journal_json.splitlines():
        try:
            entry = json.loads(line)
        except ValueError:
            continue
        unit = entry.get("UNIT")
        message = entry.get("MESSAGE")
        if (
            isinstance(unit, str) and unit.endswith(".service")
            and isinstance(message, str) and message.startswith("Started")
        ):
            starts[unit[: -len(".service")]] += 1
    return sorted(name for name, n in starts.items() if n > threshold)


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_services() -> Diagnosis:
    b = DiagnosisBuilder("Service Issues")

    failed = failed_services()
    if failed:
        names = " ".join(failed)
        b.listing("Failed services detected:", failed)
        b.add_fix(Fix(
            id="restart_failed_services",
            title="Restart Failed Services",
            description="Attempts to restart the services that are in a failed state",
            commands=(f"systemctl restart {names}",),
            requires_root=True,
            reversible=True,
            reverse_commands=(f"systemctl stop {names}",),
            risk_level=RiskLevel.MEDIUM,
        ))
        b.add_fix(Fix(
            id="check_service_logs",
            title="Check Service Logs",
            description="Shows the last hour of journal output for each failed service",
            commands=tuple(f"journalctl -u {s} --since=-1h --no-pager" for s in failed),
        ))

    stuck = transitioning_services()
    if stuck:
        b.listing("Services stuck activating or deactivating:", stuck)
        b.add_fix(Fix(
            id="reset_error_services",
            title="Reset Services in Error State",
            description="Clears failed states and restarts the stuck services",
            commands=("systemctl reset-failed", f"systemctl restart {' '.join(stuck)}"),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))

    disabled = disabled_critical_services()
    if disabled:
        b.listing("Critical services that are disabled:", disabled)
        forward: list[str] = []
        reverse: list[str] = []
        for service in disabled:
            forward += [f"systemctl enable {service}", f"systemctl start {service}"]
            reverse += [f"systemctl disable {service}", f"systemctl stop {service}"]
        b.add_fix(Fix(
            id="enable_critical_services",
            title="Enable Critical Services",
            description="Enables and starts the disabled critical services",
            commands=tuple(forward),
            requires_root=True,
            reversible=True,
            reverse_commands=tuple(reverse),
            risk_level=RiskLevel.HIGH,
        ))

    flapping = flapping_services()
    if flapping:
        b.listing("Services with high restart rates (potentially flapping):", flapping)
        b.add_fix(Fix(
            id="analyze_flapping_services",
            title="Analyze Flapping Services",
            description="Shows status and recent journal output of the restarting services",
            commands=tuple(
                cmd
                for s in flapping
                for cmd in (f"systemctl status {s} --no-pager", f"journalctl -u {s} --since=-2h --no-pager")
            ),
        ))
        names = " ".join(flapping)
        b.add_fix(Fix(
            id="stop_flapping_services",
            title="Stop Flapping Services",
            description="Stops the restarting services until their cause is fixed",
            commands=(f"systemctl stop {names}",),
            requires_root=True,
            reversible=True,
            reverse_commands=(f"systemctl start {names}",),
            risk_level=RiskLevel.HIGH,
        ))

    masked = masked_services()
    if masked:
        names = " ".join(masked)
        b.listing("Masked services that may need attention:", masked)
        b.add_fix(Fix(
            id="unmask_services",
            title="Unmask Services",
            description="Removes the mask so the services can be started again",
            commands=(f"systemctl unmask {names}",),
            requires_root=True,
            reversible=True,
            reverse_commands=(f"systemctl mask {names}",),
            risk_level=RiskLevel.MEDIUM,
        ))

    return b.build(
        overview=[Fix(
            id="service_overview",
            title="Service Overview",
            description="Shows failed and active services and overall systemd status",
            commands=(
                "systemctl list-units --type=service --state=failed --no-pager",
                "systemctl list-units --type=service --state=active --no-pager",
                "systemctl status --no-pager",
            ),
        )],
        none_found="No service issues detected",
    )
