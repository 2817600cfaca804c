"""
Package system diagnosis.

Covers broken dpkg states, unmet dependencies, dpkg audit problems, a held
APT lock, a large download cache, many pending upgrades and many packages
apt would autoremove.
"""

from __future__ import annotations

import os

import psutil

from debdoctor.checks.packages import count_upgradable, parse_broken_packages
from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import non_empty_lines, probe, run_probe, run_probe_status
from debdoctor.fixer.models import Fix, RiskLevel, common_fix

APT_CACHE_DIR = "/var/cache/apt/archives"
CACHE_MB_LIMIT = 1000
UPGRADABLE_LIMIT = 20
ORPHANED_LIMIT = 10

APT_PROCESS_NAMES = frozenset(("apt", "apt-get", "aptitude", "dpkg", "unattended-upgr"))
APT_LOCK_FILES = (
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/dpkg/lock",
    "/var/cache/apt/archives/lock",
)


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(list)
def broken_packages() -> list[str]:
    return parse_broken_packages(run_probe(["dpkg", "-l"], timeout=20))


@probe(list)
def dependency_problems() -> list[str]:
    code, out = run_probe_status(["apt-get", "check"], timeout=30)
    if code == 0:
        return []
    return [
        line for line in non_empty_lines(out)
        if not line.startswith(("Reading package lists", "Building dependency tree", "Reading state information"))
    ]


@probe(list)
def audit_problems() -> list[str]:
    return non_empty_lines(run_probe(["dpkg", "--audit"], timeout=20))


@probe(list)
def apt_processes() -> list[str]:
    return sorted({
        p.info["name"]
        for p in psutil.process_iter(["name"])
        if p.info["name"] in APT_PROCESS_NAMES
    })


@probe(float)
def apt_cache_mb() -> float:
    total = 0
    with os.scandir(APT_CACHE_DIR) as entries:
        for entry in entries:
            if entry.is_file(follow_symlinks=False):
                total += entry.stat(follow_symlinks=False).st_size
    return total / 1024 ** 2


@probe(int)
def upgradable_count() -> int:
    return count_upgradable(run_probe(["apt", "list", "--upgradable"], timeout=30))


@probe(int)
def orphaned_count() -> int:
    out = run_probe(["apt-get", "-s", "autoremove"], timeout=30)
    return sum(1 for line in out.splitlines() if line.startswith("Remv "))


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_packages() -> Diagnosis:
    b = DiagnosisBuilder("Package System Issues")

    broken = broken_packages()
    if broken:
        b.listing(f"Broken packages detected: {len(broken)}", broken, limit=5)
        b.add_fix(common_fix("fix_broken_packages"))
        b.add_fix(Fix(
            id="dpkg_configure_all",
            title="Configure All Packages",
            description="Configures all unpacked but unconfigured packages",
            commands=("dpkg --configure -a",),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))

    deps = dependency_problems()
    if deps:
        b.listing("Dependency issues found:", deps, limit=5)
        b.add_fix(Fix(
            id="fix_dependencies",
            title="Fix Missing Dependencies",
            description="Installs missing dependencies and repairs broken ones",
            commands=("apt-get -f install -y",),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))

    audit = audit_problems()
    if audit:
        b.listing("Package configuration issues:", audit, limit=5)
        b.add_fix(Fix(
            id="reconfigure_packages",
            title="Finish Interrupted Package Operations",
            description="Re-runs configuration for packages dpkg reports as incomplete",
            commands=("dpkg --configure -a", "apt-get -f install -y"),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))

    running = apt_processes()
    if running:
        b.finding(f"APT is currently locked (running: {', '.join(running)})")
        b.add_fix(Fix(
            id="show_apt_processes",
            title="Show Running APT Processes",
            description="Shows the processes that may be holding the APT/dpkg lock",
            commands=("ps -C apt,apt-get,aptitude,dpkg,unattended-upgr -o pid,etime,args",),
        ))
        b.add_fix(Fix(
            id="remove_apt_lock",
            title="Remove APT Lock Files (DANGEROUS)",
            description=(
                "Force-removes the APT/dpkg lock files and finishes pending configuration. "
                "Only use this when no package process is actually running."
            ),
            commands=(*(f"rm -f {path}" for path in APT_LOCK_FILES), "dpkg --configure -a"),
            requires_root=True,
            risk_level=RiskLevel.CRITICAL,
        ))

    cache = apt_cache_mb()
    if cache > CACHE_MB_LIMIT:
        b.finding(f"Large package cache detected: {cache:.1f} MB")
        b.add_fix(common_fix("clean_package_cache"))

    upgradable = upgradable_count()
    if upgradable > UPGRADABLE_LIMIT:
        b.finding(f"Many packages available for upgrade: {upgradable}")
        b.add_fix(Fix(
            id="upgrade_packages",
            title="Upgrade All Packages",
            description="Refreshes the package lists and upgrades all packages",
            commands=("apt-get update", "apt-get upgrade -y"),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ))
        b.add_fix(Fix(
            id="list_upgradeable",
            title="List Upgradeable Packages",
            description="Shows which packages can be upgraded",
            commands=("apt list --upgradable",),
        ))

    orphaned = orphaned_count()
    if orphaned > ORPHANED_LIMIT:
        b.finding(f"Many orphaned packages detected: {orphaned}")
        b.add_fix(common_fix("remove_orphaned_packages"))
        b.add_fix(Fix(
            id="list_orphaned",
            title="List Orphaned Packages",
            description="Shows packages that apt would remove automatically",
            commands=("apt-get -s autoremove",),
        ))

    return b.build(
        overview=[Fix(
            id="package_system_check",
            title="Comprehensive Package Check",
            description="Runs the APT and dpkg consistency checks and shows repository priorities",
            commands=("apt-get check", "dpkg --audit", "apt-cache policy"),
        )],
        none_found="No package system issues detected",
    )
