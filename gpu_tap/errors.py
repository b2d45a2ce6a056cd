from __future__ import annotations


class GpuTapError(Exception):
    """Base class for collector errors."""


class CommandFailed(GpuTapError):
    """Raised when nvidia-smi cannot be started or exits non-zero."""

    def __init__(
        self,
        command: list[str],
        message: str,
        returncode: int | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(f"{' '.join(command)}: {message}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class DecodeFailed(GpuTapError):
    """Raised when nvidia-smi output does not match the expected XML layout."""


class MalformedUnitString(GpuTapError, ValueError):
    """Raised when a field is not shaped like '<number> <unit>'."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Expected '<number> <unit>', got {text!r}")
        self.text = text
        self.value = 0.0
        self.unit = ""
