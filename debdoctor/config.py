"""
Runtime configuration for debdoctor.

Reads ~/.config/debdoctor/config.toml and merges it with CLI flags.
load_config() never raises — always returns a valid dict with sensible
defaults. CLI flags win over file values.

    # ~/.config/debdoctor/config.toml
    log_dir = "/var/tmp/debdoctor-logs"
    max_auto_risk = "medium"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from debdoctor.fixer.models import RiskLevel
from debdoctor.system_info import IS_ROOT

FALLBACK_LOG_DIR = Path("/tmp/debian-doctor-logs")


def default_log_dir() -> Path:
    """~/.debian-doctor/logs, or /tmp/debian-doctor-logs when there is no usable home."""
    try:
        return Path.home() / ".debian-doctor" / "logs"
    except (RuntimeError, KeyError):
        return FALLBACK_LOG_DIR


def default_config_path() -> Path | None:
    try:
        return Path.home() / ".config" / "debdoctor" / "config.toml"
    except (RuntimeError, KeyError):
        return None


@dataclass
class Config:
    log_dir: Path = field(default_factory=default_log_dir)
    is_root: bool = IS_ROOT
    verbose: bool = False
    non_interactive: bool = False
    max_auto_risk: RiskLevel = RiskLevel.LOW
    # Set once logging is up.
    log_file: Path | None = None


def load_config(path: Path | None = None) -> dict:
    """
    Load and return debdoctor settings from the TOML file.

    Returns a dict with any of {"log_dir": Path, "max_auto_risk": RiskLevel}.
    Missing file, parse errors, or bad shapes all yield an empty dict or
    drop just the offending key.
    """
    config_path = path or default_config_path()
    empty: dict = {}

    if config_path is None or not config_path.is_file():
        return empty

    try:
        raw = config_path.read_bytes()
    except OSError:
        return empty

    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore[no-redef]
        except ModuleNotFoundError:
            return empty

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except Exception:
        return empty

    settings: dict = {}

    log_dir = data.get("log_dir")
    if isinstance(log_dir, str) and log_dir.strip():
        settings["log_dir"] = Path(log_dir).expanduser()

    risk = data.get("max_auto_risk")
    if isinstance(risk, str):
        try:
            settings["max_auto_risk"] = RiskLevel.from_label(risk)
        except ValueError:
            pass

    return settings


def build_config(
    verbose: bool = False,
    non_interactive: bool = False,
    log_dir: Path | None = None,
    max_auto_risk: RiskLevel | None = None,
    config_path: Path | None = None,
) -> Config:
    """Merge file settings with CLI flags into a Config. Privilege is read once, here."""
    settings = load_config(config_path)
    return Config(
        log_dir=log_dir or settings.get("log_dir") or default_log_dir(),
        is_root=IS_ROOT,
        verbose=verbose,
        non_interactive=non_interactive,
        max_auto_risk=max_auto_risk if max_auto_risk is not None
        else settings.get("max_auto_risk", RiskLevel.LOW),
    )
