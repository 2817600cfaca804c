"""
Interactive session — the arrow-key main menu shown when debdoctor is run
without flags.
"""

from __future__ import annotations

import logging

from simple_term_menu import TerminalMenu
from rich.console import Console

from debdoctor.config import Config
from debdoctor.diagnose.models import STRUCTURED_CATEGORIES
from debdoctor.ui.theme import APP_NAME, APP_TAGLINE, APP_VERSION, CATEGORY_ICONS, COLOR_BRAND

logger = logging.getLogger(__name__)

MAIN_ENTRIES = (
    "Run system check",
    "Diagnose a category",
    "Describe an issue",
    "Check a path's permissions",
    "View logs",
    "Quit",
)


def _menu(entries: list[str], cursor: int = 0) -> int | None:
    return TerminalMenu(
        entries,
        menu_cursor="› ",
        menu_cursor_style=("fg_cyan", "bold"),
        menu_highlight_style=("fg_cyan", "bold"),
        cursor_index=cursor,
    ).show()


def print_header(console: Console, config: Config) -> None:
    console.print()
    console.print(f"  [bold {COLOR_BRAND}]{APP_NAME}[/]  [dim]{APP_TAGLINE} · v{APP_VERSION}[/dim]")
    if not config.is_root:
        console.print("  [dim]Not running as root: fixes that need root will be refused.[/dim]")
    console.print()


def run_interactive(console: Console, config: Config) -> None:
    """Loop over the main menu until Quit, Esc, or Ctrl-C."""
    from debdoctor.commands import run_system_check, show_category, show_issue, show_logs, show_path

    print_header(console, config)
    cursor = 0
    while True:
        choice = _menu(list(MAIN_ENTRIES), cursor)
        if choice is None or choice == len(MAIN_ENTRIES) - 1:
            console.print("  [dim]Bye.[/dim]\n")
            return
        cursor = choice
        logger.debug("Menu choice: %s", MAIN_ENTRIES[choice])

        if choice == 0:
            run_system_check(console, config)
        elif choice == 1:
            labels = [
                f"{CATEGORY_ICONS.get(c.value, '·')} {c.value.capitalize()}"
                for c in STRUCTURED_CATEGORIES
            ]
            picked = _menu(labels + ["Back"])
            if picked is None or picked == len(labels):
                continue
            show_category(console, config, STRUCTURED_CATEGORIES[picked], fix=True)
        elif choice == 2:
            text = _ask(console, "Describe the problem:")
            if text is not None:
                show_issue(console, config, text, fix=True)
        elif choice == 3:
            path = (_ask(console, "Path to check:") or "").strip()
            if path:
                show_path(console, config, path, fix=True)
        elif choice == 4:
            show_logs(console, config)


def _ask(console: Console, prompt: str) -> str | None:
    """One line of input; None when the operator backs out with Ctrl-C or EOF."""
    try:
        return console.input(f"  [bold]{prompt}[/bold] ")
    except (KeyboardInterrupt, EOFError):
        console.print()
        return None
