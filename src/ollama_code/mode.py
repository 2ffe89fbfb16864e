"""Permission modes gating every side-effecting operation."""

from enum import Enum


class OperationMode(Enum):
    """How much the assistant may change on its own."""
    READONLY = "readonly"        # Never write, never run mutating commands
    INTERACTIVE = "interactive"  # Ask before writing or running risky commands
    AUTONOMOUS = "autonomous"    # Execute without asking

    def __str__(self) -> str:
        return self.value

    def allows_writes(self) -> bool:
        """Check if file writes are permitted."""
        return self is not OperationMode.READONLY

    def requires_confirmation(self) -> bool:
        """Check if the user must approve side effects."""
        return self is OperationMode.INTERACTIVE

    @property
    def description(self) -> str:
        """Human-readable description of the mode."""
        return _DESCRIPTIONS[self]

    @property
    def label(self) -> str:
        """Short uppercase label for prompts and status lines."""
        return self.value.upper()


_DESCRIPTIONS = {
    OperationMode.READONLY: "Read-only: files and repository are never modified",
    OperationMode.INTERACTIVE: "Interactive: asks for confirmation before changes",
    OperationMode.AUTONOMOUS: "Autonomous: applies changes without asking",
}


def parse_mode(value: str) -> OperationMode:
    """Parse a mode name, falling back to interactive.

    Args:
        value: Mode name such as "readonly" or "AUTONOMOUS".

    Returns:
        The matching OperationMode, or INTERACTIVE for unknown input.
    """
    try:
        return OperationMode((value or "").strip().lower())
    except ValueError:
        return OperationMode.INTERACTIVE


def all_modes() -> list[OperationMode]:
    """List modes from most to least restrictive."""
    return [OperationMode.READONLY, OperationMode.INTERACTIVE, OperationMode.AUTONOMOUS]
