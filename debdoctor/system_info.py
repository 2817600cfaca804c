"""
Host detection — privilege, distribution, kernel.
Determined once at import; every module that needs the privilege context
imports IS_ROOT from here.
"""

import os
import platform
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Any


# Module-level constants
IS_ROOT: bool = hasattr(os, "geteuid") and os.geteuid() == 0

KERNEL_RELEASE: str = platform.release()  # e.g. "6.1.0-18-amd64"

_OS_RELEASE = Path("/etc/os-release")


def _run(cmd: list[str], timeout: int = 5) -> str:
    """Run a command and return stdout. Returns '' on any error."""
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
        return result.stdout.strip()
    except Exception:
        return ""


def parse_os_release(text: str) -> dict[str, str]:
    """Parse /etc/os-release KEY=value lines, stripping optional quotes."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key] = value.strip().strip('"').strip("'")
    return values


@lru_cache(maxsize=1)
def get_system_info() -> dict[str, Any]:
    """
    Return a dict describing this host.

    Keys:
        distribution   "Debian GNU/Linux 12 (bookworm)" | "Unknown"
        distro_id      "debian" | "ubuntu" | ""
        kernel         "6.1.0-18-amd64"
        machine        "x86_64"
        hostname       "bookworm-box"
        uptime         "up 3 days, 2 hours" | ""
        is_root        True | False
    """
    try:
        release = parse_os_release(_OS_RELEASE.read_text())
    except OSError:
        release = {}

    return {
        "distribution": release.get("PRETTY_NAME", "Unknown"),
        "distro_id": release.get("ID", ""),
        "kernel": KERNEL_RELEASE,
        "machine": platform.machine(),
        "hostname": platform.node(),
        "uptime": _run(["uptime", "-p"]),
        "is_root": IS_ROOT,
    }


# ── Mount table ───────────────────────────────────────────────────────────────

PROC_MOUNTS = Path("/proc/mounts")

# Pseudo filesystems that are legitimately read-only or have no backing store.
VIRTUAL_FS_TYPES = frozenset((
    "proc", "sysfs", "devtmpfs", "devpts", "tmpfs", "securityfs", "cgroup",
    "cgroup2", "pstore", "bpf", "debugfs", "tracefs", "configfs", "fusectl",
    "mqueue", "hugetlbfs", "autofs", "binfmt_misc", "efivarfs", "squashfs",
    "iso9660", "nsfs", "ramfs", "rpc_pipefs", "overlay", "fuse.portal",
    "fuse.gvfsd-fuse",
))


def parse_mounts(text: str) -> list[tuple[str, str, str, list[str]]]:
    """
    Parse /proc/mounts text into (device, mountpoint, fstype, options).

    Octal escapes the kernel uses for spaces in mount points (\\040) are decoded.
    """
    mounts = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 4:
            continue
        device, mountpoint, fstype, opts = fields[:4]
        mountpoint = mountpoint.replace("\\040", " ").replace("\\011", "\t")
        mounts.append((device, mountpoint, fstype, opts.split(",")))
    return mounts


def read_only_mounts(text: str) -> list[str]:
    """Mount points of real filesystems mounted with the 'ro' option."""
    return [
        mountpoint
        for _, mountpoint, fstype, opts in parse_mounts(text)
        if fstype not in VIRTUAL_FS_TYPES and "ro" in opts
    ]
