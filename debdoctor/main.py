"""
Debian Doctor — entry point.

CLI flags, logging setup, dispatch to system check / diagnosis / menu.
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from debdoctor import __version__
from debdoctor.config import build_config
from debdoctor.diagnose.models import STRUCTURED_CATEGORIES
from debdoctor.errors import LogSetupError
from debdoctor.fixer.models import RiskLevel
from debdoctor.log import setup_logging
from debdoctor.ui.theme import DEBDOCTOR_THEME


# ── Console (shared across the tool) ─────────────────────────────────────────

console = Console(theme=DEBDOCTOR_THEME)

_CATEGORY_NAMES = [c.value for c in STRUCTURED_CATEGORIES]
_RISK_NAMES = [level.name.lower() for level in RiskLevel]


# ── CLI ───────────────────────────────────────────────────────────────────────

@click.command(name="debdoctor", context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", prog_name="debdoctor")
@click.option("--non-interactive", "-n", is_flag=True, default=False,
              help="No menus or prompts. Alone: run all checks and print a summary.")
@click.option("--verbose", "-v", is_flag=True, default=False,
              help="Echo log messages to the terminal.")
# What to look at
@click.option("--issue", "-i", metavar="TEXT", default=None,
              help='Describe a problem in your own words, e.g. "wifi is slow".')
@click.option("--category", "-c", type=click.Choice(_CATEGORY_NAMES, case_sensitive=False),
              default=None, help="Diagnose one category.")
@click.option("--path", "-p", metavar="PATH", default=None,
              help="Explain the permissions of one file or directory.")
# Fix mode
@click.option("--fix", is_flag=True, default=False,
              help="With --issue, --category or --path: offer (or, with -n, apply) the fixes.")
@click.option("--max-risk", type=click.Choice(_RISK_NAMES, case_sensitive=False), default=None,
              help="With -n --fix: highest risk level applied automatically (default: low).")
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory for log files (default: ~/.debian-doctor/logs).")
def cli(
    non_interactive: bool,
    verbose: bool,
    issue: Optional[str],
    category: Optional[str],
    path: Optional[str],
    fix: bool,
    max_risk: Optional[str],
    log_dir: Optional[Path],
) -> None:
    """Debian System Doctor.

    Checks a Debian-based system for common problems, explains what it
    found, and offers fixes. Nothing is changed without your consent.

    \b
    Examples:
      debdoctor                         interactive menu
      debdoctor -n                      run all checks, print summary
      debdoctor -c network              diagnose networking
      debdoctor -i "apt is broken" --fix
      debdoctor -p ~/.ssh/id_ed25519    explain a file's permissions
    """
    # ── Validate flag combinations ────────────────────────────────────────────
    if fix and issue is None and category is None and path is None:
        console.print("[red]Error:[/red] --fix requires --issue, --category or --path.")
        raise SystemExit(1)

    config = build_config(
        verbose=verbose,
        non_interactive=non_interactive,
        log_dir=log_dir,
        max_auto_risk=RiskLevel.from_label(max_risk) if max_risk else None,
    )

    # ── Logging ───────────────────────────────────────────────────────────────
    try:
        config.log_file = setup_logging(config, console)
    except LogSetupError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    from debdoctor.commands import run_system_check, show_category, show_issue, show_path

    try:
        if issue is not None:
            show_issue(console, config, issue, fix=fix)
        elif category is not None:
            show_category(console, config, category.lower(), fix=fix)
        elif path is not None:
            show_path(console, config, path, fix=fix)
        elif non_interactive or not sys.stdin.isatty():
            run_system_check(console, config)
        else:
            from debdoctor.ui.menu import run_interactive
            run_interactive(console, config)
    except KeyboardInterrupt:
        console.print("\n  [dim]Cancelled.[/dim]\n")


# ── Entry ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    cli()
