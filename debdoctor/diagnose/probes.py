"""
Cheap system probes used by the diagnosis handlers.

A probe that cannot run raises ProbeUnavailable internally; handlers never
see it. The @probe decorator turns any failure into the probe's empty
default, so a restricted host simply yields "no finding".
"""

from __future__ import annotations

import functools
import logging
import os
import subprocess
from typing import Callable, TypeVar

from debdoctor.errors import ProbeUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_probe(
    cmd: list[str],
    timeout: int = 10,
    any_exit: bool = False,
    combined: bool = False,
) -> str:
    """
    Run cmd and return its stdout (or stdout + stderr when combined).

    Raises ProbeUnavailable on missing binary, timeout, or a non-zero exit
    (unless any_exit is set — several systemctl verbs report state through
    their exit status).
    """
    env = {**os.environ, "LANG": "C", "LC_ALL": "C"}
    try:
        r = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            env=env,
        )
    except FileNotFoundError:
        raise ProbeUnavailable(cmd[0], "command not found") from None
    except subprocess.TimeoutExpired:
        raise ProbeUnavailable(cmd[0], f"timed out after {timeout}s") from None
    except OSError as e:
        raise ProbeUnavailable(cmd[0], str(e)) from e

    if r.returncode != 0 and not any_exit:
        raise ProbeUnavailable(cmd[0], f"exit {r.returncode}")
    return r.stdout + r.stderr if combined else r.stdout


def run_probe_status(cmd: list[str], timeout: int = 10) -> tuple[int, str]:
    """Return (returncode, stdout + stderr); raises ProbeUnavailable only if cmd cannot run."""
    env = {**os.environ, "LANG": "C", "LC_ALL": "C"}
    try:
        r = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout, check=False, env=env,
        )
    except FileNotFoundError:
        raise ProbeUnavailable(cmd[0], "command not found") from None
    except subprocess.TimeoutExpired:
        raise ProbeUnavailable(cmd[0], f"timed out after {timeout}s") from None
    except OSError as e:
        raise ProbeUnavailable(cmd[0], str(e)) from e
    return r.returncode, r.stdout + r.stderr


def probe(default: Callable[[], T]) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorate a probe so any failure returns default() instead of raising.

    default is a factory (list, int, lambda: None …) so mutable defaults
    are never shared between calls.
    """
    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            try:
                return fn(*args, **kwargs)
            except ProbeUnavailable as e:
                logger.debug("%s: %s", fn.__name__, e)
            except Exception as e:
                logger.debug("%s failed: %s", fn.__name__, e)
            return default()
        return wrapper
    return decorator


def unit_names(output: str, suffix: str = ".service") -> list[str]:
    """Extract unit names (suffix stripped) from `systemctl … --no-legend --plain` output."""
    names: list[str] = []
    for line in output.splitlines():
        fields = line.split()
        if fields and fields[0].endswith(suffix):
            names.append(fields[0][: -len(suffix)])
    return names


def non_empty_lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


def has_whitespace(value: str) -> bool:
    """Commands are split on whitespace, so paths containing it cannot be used."""
    return any(ch.isspace() for ch in value)
