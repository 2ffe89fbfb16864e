"""User confirmation prompts."""

import click

from ollama_code.style import bold, box, red, yellow


class ConsoleConfirmation:
    """Ask the user on the terminal before a side effect.

    EOF or Ctrl-C at the prompt counts as a decline.
    """

    def __init__(self, default: bool = False):
        self.default = default

    def _ask(self, question: str) -> bool:
        try:
            return click.confirm(question, default=self.default)
        except click.Abort:
            click.echo()
            return False

    def confirm(self, message: str) -> bool:
        click.echo(yellow(bold("Confirmation required")))
        click.echo(message)
        return self._ask("Continue?")

    def confirm_with_preview(self, message: str, preview: str) -> bool:
        click.echo(yellow(bold("Confirmation required")))
        click.echo(message)
        if preview:
            click.echo(box("Preview", preview, width=78) if "\033[" not in preview else preview)
        return self._ask("Continue?")

    def confirm_dangerous(self, message: str, warning: str = "") -> bool:
        """Stricter prompt: the user must type 'yes' in full."""
        click.echo(red(bold("WARNING: potentially dangerous action")))
        click.echo(message)
        if warning:
            click.echo(red(warning))
        try:
            answer = click.prompt("Type 'yes' to proceed", default="", show_default=False)
        except click.Abort:
            click.echo()
            return False
        return answer.strip().lower() == "yes"


class AutoConfirmation:
    """Non-interactive confirmation that always gives the same answer.

    Records every prompt it was asked, which tests use to assert on them.
    """

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer

    def confirm_with_preview(self, message: str, preview: str) -> bool:
        self.prompts.append(message)
        return self.answer

    def confirm_dangerous(self, message: str, warning: str = "") -> bool:
        self.prompts.append(message)
        return self.answer
