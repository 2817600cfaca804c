"""
debdoctor visual design system.

All colors, styles, and icons as named constants.
Import from here — never hardcode markup strings in other modules.

One 24-bit palette, readable on the dark backgrounds most Linux terminals
default to. NO_COLOR / TERM=dumb are honoured by rich itself.
"""

from rich.style import Style
from rich.theme import Theme

from debdoctor import __version__
from debdoctor.checks.base import Severity
from debdoctor.fixer.models import RiskLevel


# ── Brand ─────────────────────────────────────────────────────────────────────

APP_NAME = "debdoctor"
APP_TAGLINE = "Debian System Doctor"
APP_VERSION = __version__


# ── Color palette ─────────────────────────────────────────────────────────────

COLOR_CRITICAL = "#E05252"      # Warm severity red
COLOR_ERROR    = "#E07A52"      # Orange-red
COLOR_WARNING  = "#D4870A"      # Amber
COLOR_PASS     = "#4DBD74"      # Calm sage-green
COLOR_INFO     = "#5BA3C9"      # Slate blue
COLOR_BRAND    = "#C8466B"      # Debian swirl red
COLOR_DIM      = "#787878"      # Medium gray
COLOR_COMMAND  = "#C0C0C0"      # Light silver
COLOR_TEXT     = "#F0F0F0"      # Primary text


# ── Rich styles ───────────────────────────────────────────────────────────────

STYLE_CRITICAL = Style(color=COLOR_CRITICAL, bold=True)
STYLE_ERROR    = Style(color=COLOR_ERROR,    bold=True)
STYLE_WARNING  = Style(color=COLOR_WARNING,  bold=True)
STYLE_INFO     = Style(color=COLOR_INFO)


# ── Health score ──────────────────────────────────────────────────────────────

BAR_WIDTH = 22


def score_color(score: int) -> str:
    """Hex color for a 0–100 health score."""
    if score >= 90:
        return COLOR_PASS
    if score >= 75:
        return COLOR_INFO
    if score >= 60:
        return COLOR_WARNING
    if score >= 40:
        return COLOR_ERROR
    return COLOR_CRITICAL


# ── Severity icons ────────────────────────────────────────────────────────────

ICON_INFO = "ℹ️ "
ICON_WARNING = "⚠️ "
ICON_ERROR = "❌"
ICON_CRITICAL = "🔴"
ICON_FIX = "🔧"
ICON_LOCK = "🔐"

SEVERITY_ICONS: dict[Severity, str] = {
    Severity.INFO: ICON_INFO,
    Severity.WARNING: ICON_WARNING,
    Severity.ERROR: ICON_ERROR,
    Severity.CRITICAL: ICON_CRITICAL,
}

SEVERITY_STYLES: dict[Severity, Style] = {
    Severity.INFO: STYLE_INFO,
    Severity.WARNING: STYLE_WARNING,
    Severity.ERROR: STYLE_ERROR,
    Severity.CRITICAL: STYLE_CRITICAL,
}


# ── Risk levels ───────────────────────────────────────────────────────────────
# Advisory colour comes from the model; the theme only decides how to draw it.

RISK_STYLES: dict[RiskLevel, str] = {level: level.color for level in RiskLevel}


# ── Category icons ────────────────────────────────────────────────────────────

CATEGORY_ICONS: dict[str, str] = {
    "boot": "🥾",
    "network": "🌐",
    "disk": "💽",
    "services": "⚙️ ",
    "packages": "📦",
    "permissions": "🔏",
    "filesystem": "🗂️ ",
    "performance": "🧠",
    "logs": "📜",
    "custom": "💬",
}


# ── Rich Theme ────────────────────────────────────────────────────────────────

DEBDOCTOR_THEME = Theme(
    {
        "critical": f"{COLOR_CRITICAL} bold",
        "error":    f"{COLOR_ERROR} bold",
        "warning":  f"{COLOR_WARNING} bold",
        "pass":     f"{COLOR_PASS} bold",
        "info":     COLOR_INFO,
        "brand":    f"{COLOR_BRAND} bold",
        "dim":      COLOR_DIM,
        "command":  COLOR_COMMAND,
        "text":     COLOR_TEXT,
    }
)
