"""
System summary shown under the check report: a 0–100 health score, live
resource status, and plain-language recommendations.

Scoring (start at 100, clamp to [0, 100]):
  ERROR / CRITICAL finding   -20 each
  WARNING finding            -5 each
  CPU > 80%                  -10
  Memory > 90%               -10
  Swap > 50%                 -5
  Each disk > 90% used       -10   (> 80%: -5)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TypeVar

import psutil

from debdoctor.checks.base import ResultAggregator

logger = logging.getLogger(__name__)

T = TypeVar("T")

RESOLV_CONF = Path("/etc/resolv.conf")

# Mount points under these prefixes are kernel or runtime state, not storage.
PSEUDO_MOUNT_PREFIXES = ("/sys", "/proc", "/dev", "/run")

CPU_SAMPLE_SECONDS = 0.5
LONG_UPTIME_DAYS = 30


# ── Data ──────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DiskUsage:
    mountpoint: str
    fstype: str
    percent: float


@dataclass
class ResourceStatus:
    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    swap_percent: float = 0.0
    load_average: tuple[float, float, float] = (0.0, 0.0, 0.0)
    uptime_seconds: float = 0.0
    disks: list[DiskUsage] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    dns_servers: list[str] = field(default_factory=list)


@dataclass
class SystemSummary:
    score: int
    resources: ResourceStatus
    recommendations: list[str]

    @property
    def status(self) -> str:
        return health_status(self.score)


# ── Gathering ─────────────────────────────────────────────────────────────────

def _safe(fn: Callable[[], T], default: T) -> T:
    try:
        return fn()
    except (OSError, psutil.Error) as e:
        logger.debug("resource probe %s failed: %s", getattr(fn, "__name__", fn), e)
        return default


def parse_nameservers(text: str) -> list[str]:
    """nameserver addresses from resolv.conf text, in file order."""
    servers = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0] == "nameserver":
            servers.append(fields[1])
    return servers


def _disks() -> list[DiskUsage]:
    disks = []
    for part in psutil.disk_partitions(all=False):
        if part.mountpoint.startswith(PSEUDO_MOUNT_PREFIXES):
            continue
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError:
            continue
        disks.append(DiskUsage(part.mountpoint, part.fstype, usage.percent))
    return disks


def _active_interfaces() -> list[str]:
    return sorted(
        name for name, stats in psutil.net_if_stats().items()
        if name != "lo" and stats.isup
    )


def gather_resources() -> ResourceStatus:
    """Sample current resource usage. Any probe that fails leaves its default."""
    return ResourceStatus(
        cpu_percent=_safe(lambda: psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS), 0.0),
        memory_percent=_safe(lambda: psutil.virtual_memory().percent, 0.0),
        swap_percent=_safe(lambda: psutil.swap_memory().percent, 0.0),
        load_average=_safe(psutil.getloadavg, (0.0, 0.0, 0.0)),
        uptime_seconds=_safe(lambda: time.time() - psutil.boot_time(), 0.0),
        disks=_safe(_disks, []),
        interfaces=_safe(_active_interfaces, []),
        dns_servers=_safe(lambda: parse_nameservers(RESOLV_CONF.read_text()), []),
    )


# ── Scoring ───────────────────────────────────────────────────────────────────

def calculate_health_score(aggregator: ResultAggregator, resources: ResourceStatus) -> int:
    score = 100
    score -= 20 * len(aggregator.errors)
    score -= 5 * len(aggregator.warnings)

    if resources.cpu_percent > 80:
        score -= 10
    if resources.memory_percent > 90:
        score -= 10
    if resources.swap_percent > 50:
        score -= 5

    for disk in resources.disks:
        if disk.percent > 90:
            score -= 10
        elif disk.percent > 80:
            score -= 5

    return max(0, min(100, score))


def health_status(score: int) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 75:
        return "Good"
    if score >= 60:
        return "Fair"
    if score >= 40:
        return "Poor"
    return "Critical"


def generate_recommendations(resources: ResourceStatus) -> list[str]:
    recs: list[str] = []

    if resources.cpu_percent > 80:
        recs.append("High CPU usage detected. Consider identifying resource-intensive processes.")

    if resources.memory_percent > 90:
        recs.append("Memory usage is critical. Consider closing unused applications or adding more RAM.")
    elif resources.memory_percent > 80:
        recs.append("Memory usage is high. Monitor for memory leaks.")

    if resources.swap_percent > 50:
        recs.append("High swap usage indicates memory pressure. Consider adding more RAM.")

    for disk in resources.disks:
        if disk.percent > 90:
            recs.append(f"Critical disk space on {disk.mountpoint} ({disk.percent:.1f}% used). Clean up immediately.")
        elif disk.percent > 80:
            recs.append(f"Low disk space on {disk.mountpoint} ({disk.percent:.1f}% used). Consider cleanup.")

    if resources.uptime_seconds > LONG_UPTIME_DAYS * 86400:
        recs.append(
            f"System has been running for over {LONG_UPTIME_DAYS} days. "
            "Consider scheduling a reboot for updates."
        )

    if not resources.interfaces:
        recs.append("No active network interfaces detected.")
    if not resources.dns_servers:
        recs.append("No DNS servers configured. Check network settings.")

    return recs


def build_summary(aggregator: ResultAggregator, resources: ResourceStatus) -> SystemSummary:
    return SystemSummary(
        score=calculate_health_score(aggregator, resources),
        resources=resources,
        recommendations=generate_recommendations(resources),
    )
