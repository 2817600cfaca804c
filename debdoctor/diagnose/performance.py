"""Performance diagnosis: CPU, memory, load average and swap via psutil."""

from __future__ import annotations

import psutil

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import non_empty_lines, probe, run_probe
from debdoctor.fixer.models import Fix, RiskLevel, common_fix

CPU_PERCENT = 80
MEMORY_PERCENT = 85
SWAP_PERCENT = 50
LOAD_PER_CORE = 2


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(lambda: None)
def cpu_percent() -> float | None:
    return psutil.cpu_percent(interval=0.5)


@probe(lambda: None)
def memory_percent() -> float | None:
    return psutil.virtual_memory().percent


@probe(lambda: None)
def swap_usage() -> tuple[int, float] | None:
    """(total bytes, percent used)."""
    swap = psutil.swap_memory()
    return swap.total, swap.percent


@probe(lambda: None)
def load_average() -> tuple[float, int] | None:
    """(1-minute load, logical CPU count)."""
    load1, _, _ = psutil.getloadavg()
    return load1, psutil.cpu_count() or 1


@probe(list)
def top_processes(sort_by: str, limit: int = 3) -> list[str]:
    """'name: N% CPU' / 'name: N% MEM' lines for the heaviest processes."""
    column = "%cpu" if sort_by == "cpu" else "%mem"
    out = run_probe(["ps", "-eo", f"comm,{column}", f"--sort=-{column}", "--no-headers"])
    label = "CPU" if sort_by == "cpu" else "MEM"
    lines = []
    for line in non_empty_lines(out)[:limit]:
        name, _, value = line.rpartition(" ")
        lines.append(f"{name.strip()}: {value}% {label}")
    return lines


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_performance() -> Diagnosis:
    b = DiagnosisBuilder("Performance Issues")

    cpu = cpu_percent()
    if cpu is not None and cpu > CPU_PERCENT:
        b.finding(f"High CPU usage: {cpu:.1f}%")
        consumers = top_processes("cpu")
        if consumers:
            b.listing("Top CPU consumers:", consumers)
        b.add_fix(Fix(
            id="show_cpu_hogs",
            title="Show CPU-Heavy Processes",
            description="Lists processes sorted by CPU usage",
            commands=("ps -eo pid,user,comm,%cpu,%mem --sort=-%cpu",),
        ))

    mem = memory_percent()
    swap = swap_usage()
    if mem is not None and mem > MEMORY_PERCENT:
        b.finding(f"High memory usage: {mem:.1f}%")
        consumers = top_processes("mem")
        if consumers:
            b.listing("Top memory consumers:", consumers)
        b.add_fix(Fix(
            id="clear_caches",
            title="Drop Filesystem Caches",
            description="Flushes dirty pages and drops the page cache, dentries and inodes",
            commands=("sync", "sysctl -w vm.drop_caches=3"),
            requires_root=True,
        ))
        if swap is not None and swap[0] == 0:
            b.finding("No swap space configured")
            b.add_fix(common_fix("create_swap_file"))

    load = load_average()
    if load is not None:
        load1, cores = load
        if load1 > cores * LOAD_PER_CORE:
            b.finding(f"High system load: {load1:.2f} (cores: {cores})")
            b.add_fix(Fix(
                id="view_processes",
                title="View Running Processes",
                description="Shows all processes sorted by CPU usage to find what drives the load",
                commands=("ps aux --sort=-%cpu",),
            ))

    if swap is not None and swap[0] > 0 and swap[1] > SWAP_PERCENT:
        b.finding(f"High swap usage: {swap[1]:.1f}% - possible memory pressure")
        b.add_fix(Fix(
            id="clear_swap",
            title="Clear Swap",
            description=(
                "Moves swapped pages back into RAM and re-enables swap. "
                "Needs enough free RAM to hold everything currently swapped out."
            ),
            commands=("swapoff -a", "swapon -a"),
            requires_root=True,
            reversible=True,
            reverse_commands=("swapon -a", ""),
            risk_level=RiskLevel.HIGH,
        ))

    return b.build(
        overview=[Fix(
            id="performance_overview",
            title="Process Overview",
            description="Shows load, memory, virtual memory statistics and the busiest processes",
            commands=("uptime", "free -h", "vmstat 1 3", "ps aux --sort=-%cpu"),
        )],
        none_found="No performance issues detected",
    )
