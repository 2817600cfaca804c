"""Boot diagnosis: degraded system state, boot-time errors, read-only root."""

from __future__ import annotations

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import non_empty_lines, probe, run_probe
from debdoctor.fixer.models import Fix, RiskLevel
from debdoctor.system_info import PROC_MOUNTS, parse_mounts


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(str)
def system_state() -> str:
    # is-system-running exits non-zero for every state except "running".
    return run_probe(["systemctl", "is-system-running"], any_exit=True).strip()


@probe(list)
def boot_errors() -> list[str]:
    out = run_probe(["journalctl", "-b", "-p", "err", "--no-pager", "-q", "-o", "cat"], timeout=20)
    return non_empty_lines(out)


@probe(bool)
def root_is_read_only() -> bool:
    for _, mountpoint, _, opts in parse_mounts(PROC_MOUNTS.read_text()):
        if mountpoint == "/":
            return "ro" in opts
    return False


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_boot() -> Diagnosis:
    b = DiagnosisBuilder("Boot Issues")

    state = system_state()
    if state == "degraded":
        b.finding("System is in degraded state: one or more units failed to start")
        b.add_fix(Fix(
            id="show_failed_services",
            title="Show Failed Services",
            description="Lists the units that failed during boot",
            commands=("systemctl --failed --no-pager",),
        ))
    elif state and state not in ("running", "starting"):
        b.finding(f"System state: {state}")

    errors = boot_errors()
    if errors:
        b.listing(f"{len(errors)} error entries logged during this boot, most recent:", errors[-5:])
        b.add_fix(Fix(
            id="view_boot_errors",
            title="View Boot Errors",
            description="Shows error-priority journal entries from the current boot",
            commands=("journalctl -b -p err --no-pager",),
        ))

    if root_is_read_only():
        b.finding("Root filesystem is mounted read-only")
        b.add_fix(Fix(
            id="remount_rw",
            title="Remount Root Read-Write",
            description=(
                "Remounts / read-write. If the kernel forced it read-only after "
                "I/O errors, check the disk before writing to it."
            ),
            commands=("mount -o remount,rw /",),
            requires_root=True,
            reversible=True,
            reverse_commands=("mount -o remount,ro /",),
            risk_level=RiskLevel.HIGH,
        ))

    return b.build(
        overview=[Fix(
            id="boot_overview",
            title="Boot Overview",
            description="Shows boot timing, the slowest units and boot warnings",
            commands=(
                "systemd-analyze",
                "systemd-analyze blame --no-pager",
                "journalctl -b -p warning -n 50 --no-pager",
            ),
        )],
        none_found="No boot issues detected",
    )
