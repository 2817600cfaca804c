"""
Report renderer.

  1. Summary panel   — health score + resources + counts per severity + overall severity
  2. Findings panel  — one line per Finding, details indented beneath
  3. Recommendations — resource advice from the system summary
  4. Diagnosis panel — findings + numbered candidate fixes
  5. Suggestions     — general troubleshooting advice for free-text queries
"""

from __future__ import annotations

from typing import Sequence

from rich.console import Console, Group
from rich.markup import escape
from rich.padding import Padding
from rich.panel import Panel
from rich.text import Text

from debdoctor.checks.base import Finding, ResultAggregator, Severity
from debdoctor.diagnose.models import Diagnosis
from debdoctor.fixer.models import Fix
from debdoctor.fixer.validator import is_valid
from debdoctor.summary import ResourceStatus, SystemSummary
from debdoctor.ui.theme import (
    BAR_WIDTH,
    CATEGORY_ICONS,
    COLOR_DIM,
    COLOR_TEXT,
    ICON_FIX,
    ICON_LOCK,
    RISK_STYLES,
    SEVERITY_ICONS,
    SEVERITY_STYLES,
    score_color,
)

# Indentation for detail lines under a finding
_INDENT = 8

_BORDER_BY_SEVERITY = {
    Severity.INFO: "bright_green",
    Severity.WARNING: "yellow",
    Severity.ERROR: "bright_red",
    Severity.CRITICAL: "bright_red",
}


# ── Public API ────────────────────────────────────────────────────────────────

def print_report(
    aggregator: ResultAggregator,
    console: Console,
    summary: SystemSummary | None = None,
) -> None:
    """Render the post-check summary, findings and recommendations to the console."""
    if not len(aggregator):
        console.print("[dim]  No results to display.[/dim]")
        return

    console.print()
    console.print(build_summary_panel(aggregator, summary))
    console.print(build_findings_panel(aggregator.all))
    if summary is not None and summary.recommendations:
        console.print(build_recommendations_panel(summary.recommendations))
    console.print()


def build_summary_panel(aggregator: ResultAggregator, summary: SystemSummary | None = None) -> Panel:
    """Return the top-level Summary Panel. With a summary, the health score and resources lead."""
    overall = aggregator.severity
    critical = sum(1 for f in aggregator.errors if f.severity == Severity.CRITICAL)
    errors = len(aggregator.errors) - critical

    lines: list = []
    if summary is not None:
        lines.append(_score_line(summary))
        lines.append(_resources_line(summary.resources))

    counts_line = Text()
    counts_line.append("\n   " if lines else "   ")

    def _count_chip(severity: Severity, n: int, label: str) -> None:
        counts_line.append(SEVERITY_ICONS[severity] + " ", style="bold")
        style = SEVERITY_STYLES[severity] if n > 0 else COLOR_DIM
        counts_line.append(f"{n}  {label}", style=style)
        counts_line.append("    ")

    _count_chip(Severity.CRITICAL, critical, "Critical")
    _count_chip(Severity.ERROR, errors, "Errors")
    _count_chip(Severity.WARNING, len(aggregator.warnings), "Warnings")
    _count_chip(Severity.INFO, len(aggregator.info), "Info")

    verdict = Text()
    verdict.append("\n   Overall: ", style=COLOR_DIM)
    verdict.append(overall.label, style=SEVERITY_STYLES[overall])
    verdict.append(f"   ·   {len(aggregator)} checks run", style=COLOR_DIM)

    return Panel(
        Group(*lines, counts_line, verdict),
        title="[bold]Summary[/bold]",
        border_style=_BORDER_BY_SEVERITY[overall],
        padding=(1, 2),
    )


def _score_line(summary: SystemSummary) -> Text:
    sc = score_color(summary.score)
    filled = round(BAR_WIDTH * summary.score / 100)
    empty = BAR_WIDTH - filled

    line = Text()
    line.append("   Health Score  ", style=f"bold {COLOR_TEXT}")
    line.append(f"{summary.score:>3}", style=f"bold {sc}")
    line.append("  [", style=COLOR_DIM)
    line.append("█" * filled, style=sc)
    line.append("░" * empty, style=COLOR_DIM)
    line.append("]", style=COLOR_DIM)
    line.append("  / 100   ", style=COLOR_DIM)
    line.append(summary.status, style=f"bold {sc}")
    return line


def _resources_line(resources: ResourceStatus) -> Text:
    load = " ".join(f"{n:.2f}" for n in resources.load_average)
    line = Text()
    line.append(
        f"   CPU {resources.cpu_percent:.0f}%  ·  Memory {resources.memory_percent:.0f}%"
        f"  ·  Swap {resources.swap_percent:.0f}%  ·  Load {load}",
        style=COLOR_DIM,
    )
    for disk in resources.disks:
        line.append(f"\n   {disk.mountpoint} ({disk.fstype})  {disk.percent:.0f}% used", style=COLOR_DIM)
    return line


def build_recommendations_panel(recommendations: Sequence[str]) -> Panel:
    rows = [Text(f"  {i}. {rec}", style=COLOR_TEXT) for i, rec in enumerate(recommendations, 1)]
    return Panel(
        Group(*rows),
        title="[bold]Recommendations[/bold]",
        title_align="left",
        border_style=COLOR_DIM,
        padding=(0, 1),
    )


def build_findings_panel(findings: Sequence[Finding]) -> Panel:
    rows: list = []
    for finding in findings:
        line = Text()
        line.append(f"  {SEVERITY_ICONS[finding.severity]}  ")
        line.append(finding.name, style=f"bold {COLOR_TEXT}")
        line.append(f"   {finding.message}", style=SEVERITY_STYLES[finding.severity])
        rows.append(line)
        if finding.details:
            rows.append(Padding(Text("\n".join(finding.details), style=COLOR_DIM), (0, 0, 0, _INDENT)))

    return Panel(
        Group(*rows),
        title="[bold]System Check[/bold]",
        title_align="left",
        border_style=COLOR_DIM,
        padding=(0, 1),
    )


def build_diagnosis_panel(
    diagnosis: Diagnosis,
    category: str = "custom",
    limit: int | None = None,
) -> Panel:
    """Findings first, then the fixes numbered in the order they will be offered.

    Fixes that fail validation are never listed, so the numbering matches
    the fix menu. limit caps how many fixes are listed; the rest are
    summarised in one line.
    """
    parts: list = []

    for finding in diagnosis.findings:
        parts.append(Text(f"  {finding}", style=COLOR_TEXT if not finding.startswith("  ") else COLOR_DIM))

    fixes = [fix for fix in diagnosis.fixes if is_valid(fix)]
    if fixes:
        parts.append(Text(""))
        header = Text()
        header.append(f"  {ICON_FIX}  Available fixes", style=f"bold {COLOR_TEXT}")
        parts.append(header)
        shown = fixes if limit is None else fixes[:limit]
        for i, fix in enumerate(shown, 1):
            parts.append(fix_line(fix, i))
        hidden = len(fixes) - len(shown)
        if hidden:
            parts.append(Text(f"      … and {hidden} more", style=COLOR_DIM))

    icon = CATEGORY_ICONS.get(category, CATEGORY_ICONS["custom"])
    return Panel(
        Group(*parts),
        title=f"[bold]{icon}  {escape(diagnosis.issue)}[/bold]",
        title_align="left",
        border_style="cyan",
        padding=(1, 1),
    )


def fix_line(fix: Fix, index: int) -> Text:
    """'  3. Restart Network Service   Medium  🔐' — one line per fix."""
    line = Text()
    line.append(f"  {index:>2}. ", style=COLOR_DIM)
    line.append(fix.title, style=COLOR_TEXT)
    line.append("   ")
    line.append(fix.risk_level.label, style=RISK_STYLES[fix.risk_level])
    if fix.requires_root:
        line.append(f"  {ICON_LOCK}")
    if fix.reversible:
        line.append("  ↶", style=COLOR_DIM)
    return line


def print_suggestions(console: Console, suggestions: Sequence[str], limit: int = 5) -> None:
    console.print("  [bold]General troubleshooting suggestions:[/bold]")
    for i, suggestion in enumerate(suggestions[:limit], 1):
        console.print(f"  [dim]{i}.[/dim] {escape(suggestion)}")
    console.print()
