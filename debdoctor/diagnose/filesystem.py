"""Filesystem diagnosis: read-only mounts, inode exhaustion, failed mount units."""

from __future__ import annotations

import os
import re
from typing import Collection

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import has_whitespace, probe, run_probe, unit_names
from debdoctor.fixer.models import Fix, RiskLevel
from debdoctor.system_info import PROC_MOUNTS, VIRTUAL_FS_TYPES, parse_mounts, read_only_mounts

INODE_PERCENT = 90


def remount_fix_id(mountpoint: str, index: int = 0, taken: Collection[str] = ()) -> str:
    """
    '/' → remount_rw, '/srv/data' → remount_rw_srv_data.

    Different mount points can share a slug ('/srv-data', '/srv_data'); when
    the id is already in taken, the mount point's index is appended.
    """
    slug = re.sub(r"[^A-Za-z0-9]+", "_", mountpoint).strip("_")
    fix_id = f"remount_rw_{slug}" if slug else "remount_rw"
    if fix_id not in taken:
        return fix_id
    suffix = index
    while f"{fix_id}_{suffix}" in taken:
        suffix += 1
    return f"{fix_id}_{suffix}"


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(list)
def read_only_filesystems() -> list[str]:
    return read_only_mounts(PROC_MOUNTS.read_text())


@probe(list)
def high_inode_usage() -> list[tuple[str, float]]:
    """(mountpoint, percent of inodes used) above INODE_PERCENT on real block filesystems."""
    seen: set[str] = set()
    usage = []
    for device, mountpoint, fstype, _ in parse_mounts(PROC_MOUNTS.read_text()):
        if fstype in VIRTUAL_FS_TYPES or not device.startswith("/dev/") or mountpoint in seen:
            continue
        seen.add(mountpoint)
        try:
            st = os.statvfs(mountpoint)
        except OSError:
            continue
        # Some filesystems (btrfs, vfat) do not report inode counts.
        if st.f_files:
            percent = (st.f_files - st.f_ffree) * 100 / st.f_files
            if percent > INODE_PERCENT:
                usage.append((mountpoint, percent))
    return usage


@probe(list)
def failed_mount_units() -> list[str]:
    out = run_probe([
        "systemctl", "list-units", "--type=mount", "--state=failed",
        "--no-legend", "--plain", "--no-pager",
    ])
    return unit_names(out, suffix=".mount")


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_filesystem() -> Diagnosis:
    b = DiagnosisBuilder("Filesystem Issues")

    ro = read_only_filesystems()
    if ro:
        b.listing("Read-only filesystems detected:", ro)
        remount_ids: set[str] = set()
        for index, mountpoint in enumerate(ro):
            if has_whitespace(mountpoint):
                continue
            fix_id = remount_fix_id(mountpoint, index, remount_ids)
            remount_ids.add(fix_id)
            b.add_fix(Fix(
                id=fix_id,
                title=f"Remount {mountpoint} Read-Write",
                description=(
                    f"Remounts {mountpoint} read-write. A filesystem the kernel switched to "
                    "read-only after errors should be checked first."
                ),
                commands=(f"mount -o remount,rw {mountpoint}",),
                requires_root=True,
                reversible=True,
                reverse_commands=(f"mount -o remount,ro {mountpoint}",),
                risk_level=RiskLevel.HIGH if mountpoint == "/" else RiskLevel.MEDIUM,
            ))
        b.add_fix(Fix(
            id="check_filesystem_errors",
            title="Check Filesystem Errors",
            description="Shows kernel warnings and errors from this boot",
            commands=("journalctl -k -b -p warning --no-pager",),
        ))

    inodes = high_inode_usage()
    if inodes:
        b.listing(
            "Inode usage issues:",
            [f"{mountpoint}: {percent:.0f}% of inodes used" for mountpoint, percent in inodes],
        )
        b.add_fix(Fix(
            id="clean_temp_files",
            title="Clean Old Temporary Files",
            description="Deletes files not accessed for over a week in /tmp and a month in /var/tmp",
            commands=(
                "find /tmp -xdev -type f -atime +7 -delete",
                "find /var/tmp -xdev -type f -atime +30 -delete",
            ),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))
        b.add_fix(Fix(
            id="show_inode_usage",
            title="Show Inode Usage",
            description="Shows inode usage for every mounted filesystem",
            commands=("df -i",),
        ))

    failed = failed_mount_units()
    if failed:
        b.listing("Mount issues detected:", [f"{unit}.mount failed" for unit in failed])
        b.add_fix(Fix(
            id="reload_systemd_mounts",
            title="Reload Mount Units",
            description="Regenerates mount units from /etc/fstab and retries local mounts",
            commands=("systemctl daemon-reload", "systemctl restart local-fs.target"),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))
        b.add_fix(Fix(
            id="check_fstab",
            title="Verify /etc/fstab",
            description="Checks /etc/fstab for syntax errors and missing devices",
            commands=("findmnt --verify",),
        ))

    return b.build(
        overview=[Fix(
            id="filesystem_overview",
            title="Filesystem Overview",
            description="Shows mounted filesystems with their types, space and inode usage",
            commands=("findmnt --real", "df -hT", "df -i"),
        )],
        none_found="No filesystem issues detected",
    )
