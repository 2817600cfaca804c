"""
The things debdoctor can do, shared by the CLI flags and the interactive
menu:

  run_system_check  — all checks → aggregator → summary report with health score
  show_category     — structured diagnosis for one category (+ optional fix session)
  show_issue        — free-text diagnosis with suggestions (+ optional fix session)
  show_path         — permission analysis of one file or directory (+ optional fix session)
  show_logs         — where this tool and the system keep their logs, plus the latest entries
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from debdoctor.checks import all_checks
from debdoctor.checks.base import ResultAggregator, run_checks
from debdoctor.config import Config
from debdoctor.diagnose import diagnose, diagnose_issue
from debdoctor.diagnose.custom import TROUBLESHOOTING_SUGGESTIONS
from debdoctor.diagnose.models import Category, Diagnosis
from debdoctor.diagnose.permissions import diagnose_path_permissions
from debdoctor.fixer.runner import SessionResult, run_fix_session
from debdoctor.log import LOG_GLOB
from debdoctor.summary import build_summary, gather_resources
from debdoctor.ui.report import build_diagnosis_panel, print_report, print_suggestions
from debdoctor.ui.theme import COLOR_COMMAND

logger = logging.getLogger(__name__)

# Free-text diagnoses list at most this many fixes in the panel.
ISSUE_FIX_DISPLAY_LIMIT = 10

# show_logs: how many earlier log files and trailing lines to list.
RECENT_LOG_FILES = 5
LOG_TAIL_LINES = 15

SYSTEM_LOG_HINTS = (
    "journalctl -xe",
    "journalctl -p err -b",
    "/var/log/syslog",
)


def run_system_check(console: Console, config: Config) -> ResultAggregator:
    checks = all_checks(config.is_root)
    logger.info("Running %d checks", len(checks))
    with console.status("[dim]Checking system…[/dim]", spinner="dots"):
        aggregator = run_checks(checks, ResultAggregator(), is_root=config.is_root)
        summary = build_summary(aggregator, gather_resources())
    logger.info("Health score %d (%s)", summary.score, summary.status)
    print_report(aggregator, console, summary)
    return aggregator


def show_category(
    console: Console, config: Config, category: Category | str, fix: bool = False,
) -> Diagnosis:
    cat = Category(category)
    logger.info("Diagnosing category %s", cat.value)
    with console.status(f"[dim]Diagnosing {cat.value}…[/dim]", spinner="dots"):
        result = diagnose(cat)
    console.print()
    console.print(build_diagnosis_panel(result, category=cat.value))
    if fix:
        _fix(console, config, result)
    return result


def show_issue(console: Console, config: Config, text: str, fix: bool = False) -> Diagnosis:
    logger.info("Diagnosing issue: %s", text)
    result = diagnose_issue(text)
    console.print()
    console.print(build_diagnosis_panel(result, limit=ISSUE_FIX_DISPLAY_LIMIT))
    console.print()
    print_suggestions(console, TROUBLESHOOTING_SUGGESTIONS)
    if fix:
        _fix(console, config, result)
    return result


def show_path(console: Console, config: Config, path: str, fix: bool = False) -> Diagnosis:
    logger.info("Analysing permissions of %s", path)
    result = diagnose_path_permissions(path)
    console.print()
    console.print(build_diagnosis_panel(result, category=Category.PERMISSIONS.value))
    if fix:
        _fix(console, config, result)
    return result


def show_logs(console: Console, config: Config) -> None:
    console.print()
    console.print(f"  [bold]Log directory:[/bold] {escape(str(config.log_dir))}")

    try:
        files = sorted(config.log_dir.glob(LOG_GLOB))
    except OSError as e:
        logger.warning("Could not list %s: %s", config.log_dir, e)
        files = []
    current = config.log_file or (files[-1] if files else None)

    if current is not None:
        console.print(f"  [bold]This session:[/bold]  {escape(str(current))}")
        earlier = [f for f in files if f != current][-RECENT_LOG_FILES:]
        if earlier:
            console.print("  [bold]Earlier sessions:[/bold]")
            for f in reversed(earlier):
                console.print(f"    [dim]{escape(f.name)}[/dim]")
        tail = _tail(current, LOG_TAIL_LINES)
        if tail:
            console.print()
            console.print("  [bold]Latest entries:[/bold]")
            for line in tail:
                console.print(f"    [dim]{escape(line)}[/dim]")
    else:
        console.print("  [dim]No debdoctor log files yet.[/dim]")

    console.print()
    console.print("  [bold]System logs:[/bold]")
    for hint in SYSTEM_LOG_HINTS:
        console.print(f"    [{COLOR_COMMAND}]{hint}[/]")
    console.print()


def _tail(path: Path, n: int) -> list[str]:
    try:
        with path.open(encoding="utf-8", errors="replace") as fh:
            return [line.rstrip("\n") for line in deque(fh, maxlen=n)]
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return []


def _fix(console: Console, config: Config, result: Diagnosis) -> SessionResult:
    return run_fix_session(
        result,
        console,
        is_root=config.is_root,
        non_interactive=config.non_interactive,
        max_auto_risk=config.max_auto_risk,
    )
