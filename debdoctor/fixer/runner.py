"""
Fix session orchestrator.

Takes a Diagnosis, drops fixes that fail validation (logged, never shown),
then either:

  interactive      — arrow-key menu of the remaining fixes; each pick goes
                     through FixExecutor (card, y/N, run, rollback offer);
                     the menu comes back until the operator picks Done.
  non-interactive  — applies, in order, every fix whose risk is at or below
                     max_auto_risk; fixes needing root are skipped when the
                     process is not elevated.

One fix completes before the next one starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from simple_term_menu import TerminalMenu
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from debdoctor.diagnose.models import Diagnosis
from debdoctor.fixer.executor import ExecutionOutcome, ExecutionState, FixExecutor
from debdoctor.fixer.models import Fix, RiskLevel
from debdoctor.fixer.validator import partition_fixes
from debdoctor.ui.theme import APP_NAME, COLOR_BRAND, COLOR_DIM, COLOR_TEXT

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    outcomes: list[ExecutionOutcome] = field(default_factory=list)
    skipped: list[Fix] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return sum(1 for o in self.outcomes if o.state == ExecutionState.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.state in (ExecutionState.FAILED, ExecutionState.INTERRUPTED, ExecutionState.REVERSED)
        )

    @property
    def rolled_back(self) -> int:
        return sum(1 for o in self.outcomes if o.rolled_back)

    @property
    def cancelled(self) -> int:
        return sum(1 for o in self.outcomes if o.state == ExecutionState.CANCELLED)


# ── Public API ────────────────────────────────────────────────────────────────

def offerable_fixes(diagnosis: Diagnosis) -> list[Fix]:
    """Valid fixes in diagnosis order. Rejected ones are logged and dropped."""
    valid, rejected = partition_fixes(diagnosis.fixes)
    for fix, err in rejected:
        logger.warning("Hiding fix %s from %s: %s", fix.id, diagnosis.issue, err)
    return valid


def run_fix_session(
    diagnosis: Diagnosis,
    console: Console,
    is_root: bool,
    non_interactive: bool = False,
    max_auto_risk: RiskLevel = RiskLevel.LOW,
    executor: FixExecutor | None = None,
) -> SessionResult:
    """
    Run a fix session over diagnosis.

    Args:
        diagnosis:       Source of candidate fixes.
        console:         Rich Console (shared with rest of tool).
        is_root:         Privilege context determined at startup.
        non_interactive: Apply eligible fixes without menus or prompts.
        max_auto_risk:   Highest risk applied automatically in non-interactive mode.
        executor:        Injected FixExecutor (tests); built from the arguments otherwise.
    """
    fixes = offerable_fixes(diagnosis)
    result = SessionResult()

    if not fixes:
        console.print()
        console.print("  [bright_green]✨  Nothing to fix for this diagnosis.[/bright_green]")
        console.print()
        return result

    executor = executor or FixExecutor(console, is_root=is_root, non_interactive=non_interactive)
    _print_fix_mode_panel(fixes, console, non_interactive, max_auto_risk)

    if non_interactive:
        _run_auto_mode(fixes, executor, is_root, max_auto_risk, result)
    else:
        _run_interactive_mode(fixes, executor, console, result)

    _print_session_summary(console, result)
    return result


# ── Interactive mode ──────────────────────────────────────────────────────────

def _run_interactive_mode(
    fixes: list[Fix], executor: FixExecutor, console: Console, result: SessionResult,
) -> None:
    done: set[str] = set()
    cursor = 0

    while True:
        entries = [_menu_entry(fix, fix.id in done) for fix in fixes] + ["Done"]
        console.print("  [bold]Choose a fix to apply[/bold] [dim](Esc or Done to finish)[/dim]")
        menu = TerminalMenu(
            entries,
            menu_cursor="› ",
            menu_cursor_style=("fg_cyan", "bold"),
            menu_highlight_style=("fg_cyan", "bold"),
            cursor_index=cursor,
        )
        choice = menu.show()
        if choice is None or choice == len(fixes):
            for fix in fixes:
                if fix.id not in done:
                    result.skipped.append(fix)
            return

        fix = fixes[choice]
        cursor = choice
        console.print()
        outcome = executor.execute(fix)
        result.outcomes.append(outcome)
        if outcome.state != ExecutionState.CANCELLED:
            done.add(fix.id)


def _menu_entry(fix: Fix, done: bool) -> str:
    mark = "✓" if done else " "
    root = "  [root]" if fix.requires_root else ""
    return f"{mark} {fix.title}  ({fix.risk_level.label}){root}"


# ── Auto mode ─────────────────────────────────────────────────────────────────

def _run_auto_mode(
    fixes: list[Fix],
    executor: FixExecutor,
    is_root: bool,
    max_auto_risk: RiskLevel,
    result: SessionResult,
) -> None:
    for fix in fixes:
        if fix.risk_level > max_auto_risk:
            logger.info("Skipping %s: risk %s above %s", fix.id, fix.risk_level.label, max_auto_risk.label)
            result.skipped.append(fix)
            continue
        if fix.requires_root and not is_root:
            logger.info("Skipping %s: requires root", fix.id)
            result.skipped.append(fix)
            continue
        result.outcomes.append(executor.execute(fix))


# ── UI helpers ────────────────────────────────────────────────────────────────

def _print_fix_mode_panel(
    fixes: list[Fix], console: Console, non_interactive: bool, max_auto_risk: RiskLevel,
) -> None:
    counts: dict[RiskLevel, int] = {}
    for fix in fixes:
        counts[fix.risk_level] = counts.get(fix.risk_level, 0) + 1

    body = Text()
    body.append(f"\n  {len(fixes)} fix{'es' if len(fixes) != 1 else ''} available:  ")
    body.append("   ".join(f"{n} {level.label}" for level, n in sorted(counts.items())))
    if non_interactive:
        body.append(
            f"\n\n  Applying fixes up to {max_auto_risk.label} risk without prompting.\n",
            style=COLOR_DIM,
        )
    else:
        body.append("\n\n  Pick a fix to see exactly what it runs. Nothing runs without your yes.\n",
                    style=COLOR_DIM)

    console.print()
    console.print(
        Panel(body, title="[bold magenta]Fix Mode[/bold magenta]", title_align="left",
              border_style=COLOR_BRAND)
    )
    console.print()


def _print_session_summary(console: Console, result: SessionResult) -> None:
    """Print a Panel summarising the fix session."""
    body = Text()

    if result.applied == 0:
        body.append("\n  No fixes were applied.", style=COLOR_DIM)
    else:
        s = "es" if result.applied != 1 else ""
        body.append(f"\n  ✅  {result.applied} fix{s} applied", style="bold bright_green")
    if result.failed:
        body.append(f"   ·   {result.failed} failed", style="bold red")
        if result.rolled_back:
            body.append(f" ({result.rolled_back} rolled back)", style=COLOR_DIM)
    not_run = result.cancelled + len(result.skipped)
    if not_run:
        body.append(f"   ·   {not_run} skipped", style=COLOR_DIM)

    body.append("\n\n  Run  ", style=COLOR_DIM)
    body.append(APP_NAME, style=f"bold {COLOR_TEXT}")
    body.append("  again to confirm the changes took effect.\n", style=COLOR_DIM)

    border = "bright_green" if result.applied and not result.failed else (
        "red" if result.failed else "dim"
    )

    console.print()
    console.print(
        Panel(body, title="[bold]Fix session complete[/bold]", title_align="left",
              border_style=border)
    )
    console.print()
