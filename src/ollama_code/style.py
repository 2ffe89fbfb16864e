"""Console styling helpers.

Everything is built on `click.style`; `click.echo` strips the escape
codes again when output is not a terminal. Setting NO_COLOR disables
styling at the source, which also keeps previews plain.
"""

import os

import click


def _enabled() -> bool:
    return not os.environ.get("NO_COLOR")


def _style(text: str, **styles) -> str:
    return click.style(text, **styles) if _enabled() else text


def dim(text: str) -> str:
    return _style(text, fg="bright_black")


def bold(text: str) -> str:
    return _style(text, bold=True)


def green(text: str) -> str:
    return _style(text, fg="green")


def red(text: str) -> str:
    return _style(text, fg="red")


def yellow(text: str) -> str:
    return _style(text, fg="yellow")


def cyan(text: str) -> str:
    return _style(text, fg="cyan")


_DIFF_STYLES = (
    (("---", "+++"), bold),
    (("-",), red),
    (("+",), green),
    (("@@",), cyan),
)


def colorize_diff(diff_text: str) -> str:
    """Color a unified diff line by line."""
    out = []
    for line in diff_text.splitlines():
        for prefixes, paint in _DIFF_STYLES:
            if line.startswith(prefixes):
                line = paint(line)
                break
        out.append(line)
    return "\n".join(out)


def box(title: str, content: str, width: int = 60) -> str:
    """Frame `content` with a titled border, truncating long lines."""
    inner = width - 4
    label = f" {title} " if title else ""
    fill = width - 2 - len(label)
    lines = ["┌" + "─" * (fill // 2) + label + "─" * (fill - fill // 2) + "┐"]
    for line in content.split("\n"):
        if len(line) > inner:
            line = line[:inner - 3] + "..."
        lines.append(f"│ {line.ljust(inner)} │")
    lines.append("└" + "─" * (width - 2) + "┘")
    return "\n".join(lines)


def header(text: str) -> str:
    return "\n" + bold(f"=== {text} ===") + "\n"
