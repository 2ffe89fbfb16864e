"""Unified diffs and confirmation previews for file writes."""

import difflib
from dataclasses import dataclass, field
from datetime import datetime

from ollama_code.style import colorize_diff


def generate_unified_diff(old_content: str, new_content: str, path: str) -> str:
    """Generate a git-style unified diff between old and new content."""
    old_lines = old_content.splitlines(keepends=True)
    new_lines = new_content.splitlines(keepends=True)

    # Ensure lines end with newline for proper diff formatting
    if old_lines and not old_lines[-1].endswith("\n"):
        old_lines[-1] += "\n"
    if new_lines and not new_lines[-1].endswith("\n"):
        new_lines[-1] += "\n"

    diff = difflib.unified_diff(old_lines, new_lines, fromfile=f"a/{path}", tofile=f"b/{path}")
    return "".join(diff).rstrip("\n")


@dataclass
class FileDiff:
    """Difference between the current and proposed contents of one file."""
    file_path: str
    old_content: str
    new_content: str
    unified: str = ""
    added: int = 0
    removed: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def has_changes(self) -> bool:
        return self.added > 0 or self.removed > 0


class DiffManager:
    """Compute diffs between file versions."""

    def compute_diff(self, file_path: str, old_content: str, new_content: str) -> FileDiff:
        unified = generate_unified_diff(old_content, new_content, file_path)
        added = removed = 0
        for line in unified.splitlines():
            if line.startswith(("+++", "---")):
                continue
            if line.startswith("+"):
                added += 1
            elif line.startswith("-"):
                removed += 1
        return FileDiff(
            file_path=file_path,
            old_content=old_content,
            new_content=new_content,
            unified=unified,
            added=added,
            removed=removed,
        )


class PreviewManager:
    """Render a FileDiff for a confirmation prompt.

    Args:
        max_lines: Diff lines shown before the rest is elided.
        color: Apply ANSI colors to diff lines.
    """

    def __init__(self, max_lines: int = 60, color: bool = True):
        self.max_lines = max_lines
        self.color = color

    def preview(self, diff: FileDiff) -> str:
        lines = [f"File: {diff.file_path}", "─" * 60]
        if not diff.has_changes:
            lines.append("No changes")
            return "\n".join(lines)

        lines.append(f"Changes: +{diff.added} -{diff.removed}")
        lines.append("")
        body = diff.unified.splitlines()
        if len(body) > self.max_lines:
            body = body[:self.max_lines] + [f"... ({len(body) - self.max_lines} more lines)"]
        text = "\n".join(body)
        lines.append(colorize_diff(text) if self.color else text)
        lines.append("─" * 60)
        return "\n".join(lines)
