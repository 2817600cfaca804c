"""
FixExecutor — the state machine that applies one Fix.

    VALIDATED → PERMISSION_CHECKED → CONFIRMED → EXECUTING → COMPLETED
                                                          ↘ FAILED / INTERRUPTED
                                                              ↘ REVERSING → REVERSED
    (CANCELLED when the operator declines the confirmation prompt)

Commands run strictly in order, one subprocess per command, with the
operator's terminal attached to stdout/stderr. Execution halts at the first
non-zero exit; nothing is retried. When a reversible fix fails (or is
interrupted) after at least one step took effect, the operator is offered a
best-effort rollback that runs the reverse commands of the completed steps
in reverse order.

Every path returns an ExecutionOutcome — execute() does not raise.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from debdoctor.errors import (
    CommandFailed,
    DebDoctorError,
    InvalidFix,
    PermissionDenied,
    RollbackStepFailed,
)
from debdoctor.fixer.models import Fix
from debdoctor.fixer.validator import validate_fix
from debdoctor.ui.theme import COLOR_DIM, COLOR_TEXT, RISK_STYLES

logger = logging.getLogger(__name__)

CommandRunner = Callable[[list[str]], int]
Confirmer = Callable[[str], bool]


# ── States & outcome ──────────────────────────────────────────────────────────

class ExecutionState(Enum):
    VALIDATED = "validated"
    PERMISSION_CHECKED = "permission_checked"
    CONFIRMED = "confirmed"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"
    REVERSING = "reversing"
    REVERSED = "reversed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset((
    ExecutionState.COMPLETED,
    ExecutionState.FAILED,
    ExecutionState.INTERRUPTED,
    ExecutionState.REVERSED,
    ExecutionState.CANCELLED,
))


@dataclass
class ExecutionOutcome:
    fix: Fix
    state: ExecutionState = ExecutionState.VALIDATED
    last_attempted_step: int = -1     # index of the last command started
    succeeded: bool = False
    rolled_back: bool = False
    error: DebDoctorError | None = None
    rollback_errors: list[RollbackStepFailed] = field(default_factory=list)

    @property
    def last_completed_step(self) -> int:
        """Index of the last command that exited zero (-1 when none did)."""
        if self.succeeded:
            return self.last_attempted_step
        return max(self.last_attempted_step - 1, -1)


# ── Default collaborators ─────────────────────────────────────────────────────

def run_command(argv: list[str]) -> int:
    """
    Run argv with the operator's terminal attached and return the exit status.

    Raises OSError when the program cannot be spawned.
    """
    proc = subprocess.run(argv, check=False)
    return proc.returncode


def ask_yes_no(console: Console) -> Confirmer:
    """Build a confirmer that reads one line; only 'y' / 'yes' count as consent."""
    def _ask(prompt: str) -> bool:
        try:
            answer = console.input(f"  [bold]{prompt}[/bold] (y/N): ")
        except (KeyboardInterrupt, EOFError):
            console.print()
            return False
        return answer.strip().lower() in ("y", "yes")
    return _ask


# ── Executor ──────────────────────────────────────────────────────────────────

class FixExecutor:
    """
    Applies fixes one at a time.

    Args:
        console:         Rich Console for the fix card and status lines.
        is_root:         Privilege context, determined once at startup.
        non_interactive: Skip confirmation (and roll back without asking).
        runner:          Runs one argv and returns its exit status.
        confirm:         Asks the operator a yes/no question.
    """

    def __init__(
        self,
        console: Console,
        is_root: bool,
        non_interactive: bool = False,
        runner: CommandRunner | None = None,
        confirm: Confirmer | None = None,
    ) -> None:
        self.console = console
        self.is_root = is_root
        self.non_interactive = non_interactive
        self.runner = runner or run_command
        self.confirm = confirm or ask_yes_no(console)

    # ── Public API ────────────────────────────────────────────────────────────

    def execute(self, fix: Fix) -> ExecutionOutcome:
        """Validate, permission-check, confirm, run and (maybe) roll back fix."""
        try:
            validate_fix(fix)
        except InvalidFix as e:
            logger.error("Fix validation failed: %s", e)
            self.console.print(f"  [red]❌  {escape(str(e))}[/red]\n")
            return ExecutionOutcome(fix=fix, state=ExecutionState.FAILED, error=e)

        outcome = ExecutionOutcome(fix=fix)

        # VALIDATED → PERMISSION_CHECKED
        if fix.requires_root and not self.is_root:
            outcome.error = PermissionDenied(fix.title)
            outcome.state = ExecutionState.FAILED
            logger.warning("%s", outcome.error)
            self.console.print(
                f"  [red]🔐  {outcome.error}. Re-run debdoctor with sudo.[/red]\n"
            )
            return outcome
        outcome.state = ExecutionState.PERMISSION_CHECKED

        # PERMISSION_CHECKED → CONFIRMED
        if not self.non_interactive:
            self.console.print(build_fix_card(fix))
            if not self.confirm("Do you want to proceed?"):
                logger.info("Fix execution cancelled by user: %s", fix.title)
                self.console.print("  [dim]Cancelled.[/dim]\n")
                outcome.state = ExecutionState.CANCELLED
                return outcome
        outcome.state = ExecutionState.CONFIRMED

        # CONFIRMED → EXECUTING
        outcome.state = ExecutionState.EXECUTING
        logger.info("Executing fix: %s", fix.title)
        total = len(fix.commands)
        try:
            for i, cmd in enumerate(fix.commands):
                outcome.last_attempted_step = i
                logger.info("Running command %d/%d: %s", i + 1, total, cmd)
                self.console.print(f"  [dim]$[/dim]  [cyan]{escape(cmd)}[/cyan]")
                self._run_step(i, cmd)
        except CommandFailed as e:
            logger.error("Command failed: %s", e.reason)
            self.console.print(f"\n  [red]❌  Fix failed at step {e.step + 1}: {escape(e.reason)}[/red]\n")
            outcome.error = e
            outcome.state = ExecutionState.FAILED
            self._maybe_roll_back(outcome)
            return outcome
        except KeyboardInterrupt:
            step = outcome.last_attempted_step
            logger.warning("Fix '%s' interrupted at step %d", fix.title, step + 1)
            self.console.print(f"\n  [yellow]⚠️   Interrupted at step {step + 1}.[/yellow]\n")
            outcome.state = ExecutionState.INTERRUPTED
            self._maybe_roll_back(outcome)
            return outcome

        outcome.succeeded = True
        outcome.state = ExecutionState.COMPLETED
        logger.info("Fix '%s' executed successfully", fix.title)
        self.console.print("\n  [bright_green]✅  Completed successfully.[/bright_green]\n")
        return outcome

    # ── Execution helpers ─────────────────────────────────────────────────────

    def _run_step(self, step: int, cmd: str) -> None:
        """Run one command; raise CommandFailed on spawn failure or non-zero exit."""
        argv = cmd.split()
        if not argv:
            raise CommandFailed(step, cmd, "empty command")
        try:
            code = self.runner(argv)
        except OSError as e:
            raise CommandFailed(step, cmd, str(e)) from e
        if code != 0:
            raise CommandFailed(step, cmd, f"command exited with code {code}")

    def _maybe_roll_back(self, outcome: ExecutionOutcome) -> None:
        """FAILED / INTERRUPTED → REVERSING → REVERSED, when allowed and agreed."""
        fix = outcome.fix
        failed_at = outcome.last_attempted_step
        if not fix.reversible or failed_at <= 0:
            return

        if not self.non_interactive:
            self.console.print(
                "  This fix is reversible. "
                f"{failed_at} step{'s' if failed_at != 1 else ''} already took effect."
            )
            try:
                agreed = self.confirm("Undo the changes made so far?")
            except KeyboardInterrupt:
                agreed = False
            if not agreed:
                logger.info("Rollback declined for fix '%s'", fix.title)
                return

        outcome.state = ExecutionState.REVERSING
        self._reverse(outcome, failed_at - 1)
        outcome.rolled_back = True
        outcome.state = ExecutionState.REVERSED

    def _reverse(self, outcome: ExecutionOutcome, last_executed_step: int) -> None:
        """Run reverse commands for last_executed_step down to 0. Never raises."""
        fix = outcome.fix
        logger.info("Reversing fix '%s' up to step %d", fix.title, last_executed_step + 1)

        for i in range(last_executed_step, -1, -1):
            if i >= len(fix.reverse_commands):
                continue
            cmd = fix.reverse_commands[i]
            if not cmd.strip():
                continue  # nothing to undo for this step
            logger.info("Reversing step %d: %s", i + 1, cmd)
            self.console.print(f"  [dim]↶[/dim]  [cyan]{escape(cmd)}[/cyan]")
            try:
                self._run_step(i, cmd)
            except CommandFailed as e:
                failure = RollbackStepFailed(i, cmd, e.reason)
                outcome.rollback_errors.append(failure)
                logger.error("%s", failure)
                self.console.print(f"  [yellow]⚠️   {escape(str(failure))}[/yellow]")

        logger.info("Fix reversal completed")
        self.console.print("\n  [dim]Rollback finished.[/dim]\n")


# ── Fix card ──────────────────────────────────────────────────────────────────

def build_fix_card(fix: Fix) -> Panel:
    """Return a Panel with the full detail the operator consents to."""
    risk_style = RISK_STYLES[fix.risk_level]
    parts: list = []

    badge = Text()
    badge.append("  Risk: ", style=COLOR_DIM)
    badge.append(fix.risk_level.label, style=f"bold {risk_style}")
    badge.append("   ·   ", style=COLOR_DIM)
    badge.append("requires root" if fix.requires_root else "no root needed", style=COLOR_DIM)
    badge.append("   ·   ", style=COLOR_DIM)
    badge.append("reversible" if fix.reversible else "⚠️  irreversible", style=COLOR_DIM)
    parts.append(badge)
    parts.append(Text(""))

    parts.append(Text(f"  {fix.description}", style=COLOR_TEXT))
    parts.append(Text(""))

    cmds = Text()
    cmds.append("  Commands to execute:", style=f"bold {COLOR_TEXT}")
    for i, cmd in enumerate(fix.commands, 1):
        cmds.append(f"\n  {i}. ", style=COLOR_DIM)
        cmds.append(cmd, style="cyan")
    parts.append(cmds)

    if fix.risk_level.needs_banner:
        banner = Text()
        banner.append(
            f"\n  ⚠️  WARNING: This is a {fix.risk_level.label} risk operation!\n",
            style=f"bold {risk_style}",
        )
        banner.append("  Please review the commands carefully before proceeding.", style=COLOR_DIM)
        parts.append(banner)

    return Panel(
        Group(*parts),
        title=f"[bold]🔧  {fix.title}[/bold]",
        title_align="left",
        border_style=risk_style,
        padding=(0, 1),
    )
