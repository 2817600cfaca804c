"""Log diagnosis: journal size, recurring errors, core dumps, oversized log files."""

from __future__ import annotations

import os
import re
from collections import Counter

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import non_empty_lines, probe, run_probe
from debdoctor.fixer.models import Fix

JOURNAL_MB_LIMIT = 1000
ERROR_LIMIT = 50
RECURRING_MIN = 3
LOG_FILE_MB_LIMIT = 100
LOG_DIR = "/var/log"

_SIZE_RE = re.compile(r"take up ([\d.]+)([KMGT]?)", re.IGNORECASE)
_UNIT_FACTORS = {"": 1 / 1024 ** 2, "K": 1 / 1024, "M": 1, "G": 1024, "T": 1024 ** 2}


def parse_journal_size(text: str) -> float:
    """MB from `journalctl --disk-usage` ("… take up 1.2G in the file system.")."""
    m = _SIZE_RE.search(text)
    if not m:
        return 0.0
    return float(m.group(1)) * _UNIT_FACTORS[m.group(2).upper()]


def recurring_messages(lines: list[str], minimum: int = RECURRING_MIN) -> list[tuple[str, int]]:
    """Messages seen at least minimum times, most frequent first."""
    counts = Counter(lines)
    return [(msg, n) for msg, n in counts.most_common() if n >= minimum]


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(float)
def journal_size_mb() -> float:
    return parse_journal_size(run_probe(["journalctl", "--disk-usage"], combined=True))


@probe(list)
def recent_errors() -> list[str]:
    out = run_probe(
        ["journalctl", "-p", "err", "--since=-24h", "--no-pager", "-q", "-o", "cat"],
        timeout=20,
    )
    return non_empty_lines(out)


@probe(int)
def core_dump_count() -> int:
    out = run_probe(["coredumpctl", "list", "--no-pager", "--no-legend"])
    return len(non_empty_lines(out))


@probe(list)
def oversized_log_files() -> list[tuple[str, float]]:
    found = []
    for root, _, files in os.walk(LOG_DIR):
        for name in files:
            path = os.path.join(root, name)
            try:
                size_mb = os.path.getsize(path) / 1024 ** 2
            except OSError:
                continue
            if size_mb > LOG_FILE_MB_LIMIT:
                found.append((path, size_mb))
    return sorted(found, key=lambda item: item[1], reverse=True)


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_logs() -> Diagnosis:
    b = DiagnosisBuilder("Log Issues")

    size = journal_size_mb()
    if size > JOURNAL_MB_LIMIT:
        b.finding(f"Large systemd journal: {size:.0f} MB")
        b.add_fix(Fix(
            id="vacuum_journal_time",
            title="Remove Journal Entries Older Than 30 Days",
            description="Deletes archived journal files older than 30 days",
            commands=("journalctl --vacuum-time=30d",),
            requires_root=True,
        ))
        b.add_fix(Fix(
            id="vacuum_journal_size",
            title="Limit Journal to 500MB",
            description="Deletes the oldest archived journal files until 500MB remain",
            commands=("journalctl --vacuum-size=500M",),
            requires_root=True,
        ))

    errors = recent_errors()
    recurring = recurring_messages(errors)
    if len(errors) > ERROR_LIMIT or recurring:
        b.finding(f"{len(errors)} error-priority journal entries in the last 24 hours")
        if recurring:
            b.listing(
                "Recurring errors:",
                [f"({n}x) {msg[:100]}" for msg, n in recurring],
                limit=3,
            )
        b.add_fix(Fix(
            id="analyze_errors",
            title="Analyze Recent Errors",
            description="Shows all error-priority journal entries from the last 24 hours",
            commands=("journalctl -p err --since=-24h --no-pager",),
        ))

    dumps = core_dump_count()
    if dumps:
        b.finding(f"Found {dumps} core dump{'s' if dumps != 1 else ''} on system")
        b.add_fix(Fix(
            id="list_core_dumps",
            title="List Core Dumps",
            description="Lists crashed programs recorded by systemd-coredump",
            commands=("coredumpctl list --no-pager",),
        ))
        b.add_fix(Fix(
            id="clean_core_dumps",
            title="Clean Old Core Dumps",
            description="Applies the tmpfiles age limits, which expire old core dumps",
            commands=("systemd-tmpfiles --clean",),
            requires_root=True,
        ))

    big = oversized_log_files()
    if big:
        b.listing(
            "Log rotation issues detected:",
            [f"{path} is {mb:.0f} MB" for path, mb in big],
            limit=5,
        )
        b.add_fix(Fix(
            id="force_logrotate",
            title="Force Log Rotation",
            description="Forces immediate rotation for all configured logs",
            commands=("logrotate -f /etc/logrotate.conf",),
            requires_root=True,
        ))
        b.add_fix(Fix(
            id="check_logrotate_config",
            title="Check Logrotate Configuration",
            description="Dry-runs logrotate to reveal configuration errors",
            commands=("logrotate -d /etc/logrotate.conf",),
        ))

    return b.build(
        overview=[Fix(
            id="log_overview",
            title="Log Overview",
            description="Shows recent warnings, journal disk usage and the largest log files",
            commands=(
                "journalctl -p warning -n 50 --no-pager",
                "journalctl --disk-usage",
                "ls -lhS /var/log",
            ),
        )],
        none_found="No log issues detected",
    )
