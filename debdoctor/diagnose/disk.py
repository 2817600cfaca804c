"""Disk diagnosis: space on the main filesystems, kernel-reported I/O errors."""

from __future__ import annotations

import re

import psutil

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import non_empty_lines, probe, run_probe
from debdoctor.fixer.models import Fix, common_fix

WATCHED_MOUNTS = ("/", "/home", "/var", "/tmp")
WARN_PERCENT = 85
CRITICAL_PERCENT = 95

_IO_ERROR_RE = re.compile(r"i/o error|disk error|medium error|bad sector", re.IGNORECASE)
_PARTITION_RE = (
    re.compile(r"^(/dev/(?:nvme|mmcblk)\d+n?\d*)p\d+$"),
    re.compile(r"^(/dev/[a-z]+)\d+$"),
)


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(list)
def filesystem_usage() -> list[tuple[str, float]]:
    """(mountpoint, percent used) for each watched path that is its own mount."""
    mounted = {p.mountpoint for p in psutil.disk_partitions(all=False)}
    usage = []
    for path in WATCHED_MOUNTS:
        if path in mounted:
            usage.append((path, psutil.disk_usage(path).percent))
    return usage


@probe(list)
def kernel_io_errors() -> list[str]:
    out = run_probe(["journalctl", "-k", "-b", "--no-pager", "-q", "-o", "cat"], timeout=20)
    return [line for line in non_empty_lines(out) if _IO_ERROR_RE.search(line)]


@probe(lambda: None)
def root_disk() -> str | None:
    for part in psutil.disk_partitions(all=False):
        if part.mountpoint == "/" and part.device.startswith("/dev/"):
            return parent_disk(part.device)
    return None


def parent_disk(device: str) -> str:
    """/dev/sda2 → /dev/sda, /dev/nvme0n1p3 → /dev/nvme0n1; anything else unchanged."""
    for pattern in _PARTITION_RE:
        m = pattern.match(device)
        if m:
            return m.group(1)
    return device


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_disk() -> Diagnosis:
    b = DiagnosisBuilder("Disk Issues")

    full = False
    for mountpoint, percent in filesystem_usage():
        if percent > CRITICAL_PERCENT:
            b.finding(f"{mountpoint} filesystem critical: {percent:.0f}% full")
            full = True
        elif percent > WARN_PERCENT:
            b.finding(f"{mountpoint} filesystem warning: {percent:.0f}% full")
            full = True

    if full:
        b.add_fix(common_fix("clean_package_cache"))
        b.add_fix(common_fix("remove_orphaned_packages"))
        b.add_fix(common_fix("vacuum_journal"))
        b.add_fix(Fix(
            id="find_large_files",
            title="Find Large Files",
            description="Lists files over 100MB on the root filesystem",
            commands=("find / -xdev -type f -size +100M",),
            requires_root=True,
        ))

    errors = kernel_io_errors()
    if errors:
        b.listing("Disk I/O errors detected in kernel log:", errors[-5:])
        disk = root_disk()
        if disk:
            b.add_fix(Fix(
                id="check_disk_health",
                title="Check Disk Health (SMART)",
                description=f"Reads the SMART health status of {disk} (needs smartmontools)",
                commands=(f"smartctl -H {disk}", f"smartctl -l error {disk}"),
                requires_root=True,
            ))

    return b.build(
        overview=[Fix(
            id="disk_overview",
            title="Disk Usage Overview",
            description="Shows space and inode usage per filesystem and the block device tree",
            commands=("df -h", "df -i", "lsblk"),
        )],
        none_found="No disk issues detected",
    )
