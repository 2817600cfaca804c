"""
Remediation data model.

RiskLevel — ordered LOW < MEDIUM < HIGH < CRITICAL with display label and
            advisory colour. Affects prompt friction only, never correctness.
Fix       — one remediation descriptor (commands + metadata).

reverse_commands is indexed by forward step: reverse_commands[i] undoes
commands[i]. An empty entry means step i has nothing to undo.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class RiskLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return _RISK_LABELS[self]

    @property
    def color(self) -> str:
        return _RISK_COLORS[self]

    @property
    def needs_banner(self) -> bool:
        """High and Critical fixes get an extra warning on the confirmation card."""
        return self >= RiskLevel.HIGH

    @classmethod
    def from_label(cls, label: str) -> "RiskLevel":
        """Case-insensitive lookup by label, e.g. "medium" → MEDIUM."""
        try:
            return cls[label.strip().upper()]
        except KeyError:
            raise ValueError(f"unknown risk level: {label!r}") from None


_RISK_LABELS: dict[RiskLevel, str] = {
    RiskLevel.LOW: "Low",
    RiskLevel.MEDIUM: "Medium",
    RiskLevel.HIGH: "High",
    RiskLevel.CRITICAL: "Critical",
}

_RISK_COLORS: dict[RiskLevel, str] = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.CRITICAL: "magenta",
}


@dataclass(frozen=True)
class Fix:
    id: str                          # "restart_networking"
    title: str                       # "Restart Network Service"
    description: str
    commands: tuple[str, ...]        # run in order, one subprocess each
    requires_root: bool = False
    reversible: bool = False
    reverse_commands: tuple[str, ...] = ()
    risk_level: RiskLevel = RiskLevel.LOW


# ── Shared fixes ──────────────────────────────────────────────────────────────
# Reused by several diagnosis handlers. Fix is frozen, so sharing is safe.

COMMON_FIXES: dict[str, Fix] = {
    fix.id: fix
    for fix in (
        Fix(
            id="update_package_cache",
            title="Update Package Cache",
            description="Updates the APT package cache to refresh available package information",
            commands=("apt-get update",),
            requires_root=True,
        ),
        Fix(
            id="clean_package_cache",
            title="Clean Package Cache",
            description="Removes cached package files to free disk space",
            commands=("apt-get clean", "apt-get autoclean"),
            requires_root=True,
        ),
        Fix(
            id="remove_orphaned_packages",
            title="Remove Orphaned Packages",
            description="Removes packages that were automatically installed but are no longer needed",
            commands=("apt-get autoremove -y",),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ),
        Fix(
            id="restart_networking",
            title="Restart Network Service",
            description="Restarts the networking service to resolve connection issues",
            commands=("systemctl restart networking",),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ),
        Fix(
            id="flush_dns",
            title="Flush DNS Cache",
            description="Restarts systemd-resolved, clearing its resolver cache",
            commands=("systemctl restart systemd-resolved",),
            requires_root=True,
        ),
        Fix(
            id="fix_broken_packages",
            title="Fix Broken Packages",
            description="Attempts to fix broken package dependencies",
            commands=("apt-get -f install -y", "dpkg --configure -a"),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ),
        Fix(
            id="vacuum_journal",
            title="Clear Old System Logs",
            description="Removes journal entries older than 7 days to free space",
            commands=("journalctl --vacuum-time=7d",),
            requires_root=True,
        ),
        Fix(
            id="create_swap_file",
            title="Create Swap File (1GB)",
            description=(
                "Creates and enables a 1GB swap file for the current boot to relieve "
                "memory pressure. Add it to /etc/fstab yourself to keep it after reboot."
            ),
            commands=(
                "fallocate -l 1G /swapfile",
                "chmod 600 /swapfile",
                "mkswap /swapfile",
                "swapon /swapfile",
            ),
            requires_root=True,
            reversible=True,
            reverse_commands=(
                "rm -f /swapfile",
                "",
                "",
                "swapoff /swapfile",
            ),
            risk_level=RiskLevel.MEDIUM,
        ),
    )
}


def common_fix(fix_id: str) -> Fix:
    """Return a shared fix by id. Raises KeyError for unknown ids."""
    return COMMON_FIXES[fix_id]
