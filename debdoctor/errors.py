"""
Error taxonomy for debdoctor.

InvalidFix        — structural or denylist failure; the fix is never executed.
PermissionDenied  — fix needs root and the process is not elevated.
CommandFailed     — a command exited non-zero or could not be spawned.
RollbackStepFailed — one reverse command failed; rollback keeps going.
ProbeUnavailable  — a probe could not run; treated as "no finding".
LogSetupError     — log directory or file could not be created.
"""

from __future__ import annotations


class DebDoctorError(Exception):
    """Base class for every error raised by debdoctor."""


class InvalidFix(DebDoctorError):
    def __init__(self, reason: str, command: str | None = None) -> None:
        self.reason = reason
        self.command = command
        msg = f"InvalidFix: {reason}"
        if command:
            msg += f": {command}"
        super().__init__(msg)


class PermissionDenied(DebDoctorError):
    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(f"fix '{title}' requires root privileges")


class CommandFailed(DebDoctorError):
    def __init__(self, step: int, command: str, reason: str) -> None:
        self.step = step
        self.command = command
        self.reason = reason
        super().__init__(f"fix execution failed at command {step + 1}: {reason}")


class RollbackStepFailed(DebDoctorError):
    def __init__(self, step: int, command: str, reason: str) -> None:
        self.step = step
        self.command = command
        self.reason = reason
        super().__init__(f"failed to reverse step {step + 1}: {reason}")


class ProbeUnavailable(DebDoctorError):
    def __init__(self, probe: str, reason: str) -> None:
        self.probe = probe
        self.reason = reason
        super().__init__(f"probe '{probe}' unavailable: {reason}")


class LogSetupError(DebDoctorError):
    pass
