"""Command-line interface."""

import sys
from pathlib import Path
from typing import Optional

import click

from ollama_code import __version__
from ollama_code.agent import Agent
from ollama_code.bgtask import Supervisor, TaskStatus
from ollama_code.config import Config
from ollama_code.errors import OllamaCodeError
from ollama_code.llm import create_client
from ollama_code.mode import all_modes, parse_mode
from ollama_code.observability import Observability
from ollama_code.style import bold, cyan, dim, green, header, red, yellow
from ollama_code.todos import TodoManager


MODE_CHOICES = [m.value for m in all_modes()]
LOG_LEVELS = ["debug", "info", "warn", "error"]

REPL_HELP = """\
Commands:
  /help            Show this help
  /mode [MODE]     Show or switch mode (readonly, interactive, autonomous)
  /stats           Handler, tool, LLM and cache metrics
  /traces          Recorded traces as trees
  /tasks           Background tasks
  /clear           Forget conversation history
  /exit, /quit     Leave

Anything else is sent to the assistant."""


def load_config(
    mode: Optional[str] = None,
    model: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> Config:
    """Load config files and environment, then apply command-line overrides."""
    config = Config.load(Path.cwd())
    if mode:
        config.mode = parse_mode(mode)
    if model:
        config.model = model
    if log_level:
        config.log_level = log_level
    if log_format:
        config.log_format = log_format
    return config


def build_agent(config: Config) -> Agent:
    """Wire the agent with the configured backend and persistent TODOs."""
    observability = Observability(config.log_level, config.log_format)
    llm = create_client(config, wrapper=observability.llm_wrapper())
    return Agent(
        config,
        llm,
        todo_manager=TodoManager.default(),
        observability=observability,
    )


# =============================================================================
# REPL
# =============================================================================

class REPL:
    """Interactive read-eval-print loop over an Agent."""

    def __init__(self, agent: Agent):
        self.agent = agent
        self.running = True

    def prompt(self) -> str:
        return f"[{self.agent.mode.label}] > "

    def run(self) -> None:
        click.echo(bold(f"Ollama-Code-Py v{__version__}"))
        click.echo(dim(self.agent.config.show_config_info()))
        click.echo(dim("Type /help for commands, /exit to quit"))
        click.echo()

        while self.running:
            try:
                line = click.prompt(self.prompt(), prompt_suffix="", default="", show_default=False)
            except click.Abort:
                break
            line = line.strip()
            if not line:
                continue
            if line.startswith("/"):
                self.handle_command(line)
            else:
                self.handle_chat(line)

        self.agent.shutdown()
        click.echo("\nGoodbye.")

    def handle_chat(self, line: str) -> None:
        try:
            response = self.agent.process_message(line)
        except OllamaCodeError as e:
            click.echo(red(str(e)))
            return
        click.echo(response)
        click.echo()

    def handle_command(self, line: str) -> None:
        name, _, arg = line[1:].partition(" ")
        name = name.lower()
        arg = arg.strip()

        if name in ("exit", "quit", "q"):
            self.running = False
        elif name == "help":
            click.echo(REPL_HELP)
        elif name == "mode":
            self._cmd_mode(arg)
        elif name == "stats":
            click.echo(self.agent.observability.metrics.summary())
        elif name == "traces":
            click.echo(self.agent.observability.tracer.render_all_traces())
        elif name == "tasks":
            self._cmd_tasks()
        elif name == "clear":
            self.agent.clear_history()
            click.echo(green("History cleared"))
        else:
            click.echo(yellow(f"Unknown command: /{name} (try /help)"))

    def _cmd_mode(self, arg: str) -> None:
        if not arg:
            click.echo(f"Mode: {self.agent.mode} ({self.agent.mode.description})")
            return
        if arg.lower() not in MODE_CHOICES:
            click.echo(red(f"Unknown mode: {arg}. Choose from: {', '.join(MODE_CHOICES)}"))
            return
        self.agent.set_mode(parse_mode(arg))
        click.echo(green(f"Mode set to {self.agent.mode}"))

    def _cmd_tasks(self) -> None:
        tasks = self.agent.supervisor.list()
        if not tasks:
            click.echo(dim("No background tasks"))
            return
        for task in tasks:
            click.echo(f"{task.id[:8]}  {str(task.status):<9}  {task.command_line}")


# =============================================================================
# Commands
# =============================================================================

@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version and exit")
@click.option("--mode", "-m", type=click.Choice(MODE_CHOICES), help="Permission mode")
@click.option("--model", type=str, help="Model name (e.g. qwen2.5-coder:7b)")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), help="Log level")
@click.option("--log-format", type=click.Choice(["text", "json"]), help="Log output format")
@click.pass_context
def cli(ctx, version, mode, model, log_level, log_format):
    """Ollama-Code-Py: a local coding assistant driven by natural language.

    \b
    USAGE:
      ollama-code                 Start the interactive REPL
      ollama-code ask "MESSAGE"   Answer a single message and exit
      ollama-code config          Show the active configuration
      ollama-code run -- CMD      Run a command under the task supervisor

    \b
    MODES:
      readonly     Never modifies files
      interactive  Asks before changes (default)
      autonomous   Applies changes without asking
    """
    if version:
        click.echo(f"Ollama-Code-Py v{__version__}")
        ctx.exit()

    ctx.ensure_object(dict)
    ctx.obj.update(mode=mode, model=model, log_level=log_level, log_format=log_format)

    if ctx.invoked_subcommand is None:
        REPL(build_agent(load_config(**ctx.obj))).run()


@cli.command("ask")
@click.argument("message", nargs=-1, required=True)
@click.pass_context
def ask_cmd(ctx, message):
    """Process a single MESSAGE and print the reply."""
    agent = build_agent(load_config(**ctx.obj))
    try:
        click.echo(agent.process_message(" ".join(message)))
    except OllamaCodeError as e:
        click.echo(red(str(e)), err=True)
        ctx.exit(1)
    finally:
        agent.shutdown()


@cli.command("config")
@click.option("--init", "init_", is_flag=True, help="Write a default global config.json")
@click.option("--force", is_flag=True, help="Overwrite an existing file with --init")
@click.pass_context
def config_cmd(ctx, init_, force):
    """Show the active configuration.

    \b
    CONFIG LOCATIONS:
      Global:  ~/.ollama-code/config.json
      Local:   .ollama-code/config.json (per-project)

    \b
    PRIORITY (highest to lowest):
      1. Command-line options
      2. Environment variables (OLLAMA_CODE_*)
      3. Local config
      4. Global config
    """
    if init_:
        path = Config.get_global_config_path()
        if path.exists() and not force:
            click.echo(yellow(f"Config already exists: {path} (use --force to overwrite)"))
            return
        Config().save(path)
        click.echo(green(f"Wrote {path}"))
        return

    config = load_config(**ctx.obj)
    click.echo(header("Configuration"))
    click.echo(config.show_config_info())


@cli.command("run", context_settings={"ignore_unknown_options": True})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--poll", default=0.1, show_default=True, help="Output polling interval in seconds")
@click.pass_context
def run_cmd(ctx, command, poll):
    """Run COMMAND as a supervised background task and stream its output.

    \b
    EXAMPLE:
      ollama-code run -- pytest -q
    """
    supervisor = Supervisor()
    task = supervisor.start(command[0], list(command[1:]), str(Path.cwd()))
    click.echo(cyan(task.command_line))

    try:
        while True:
            finished = task.wait(poll)
            stdout, stderr = task.get_new_output()
            if stdout:
                click.echo(stdout.decode(errors="replace"), nl=False)
            if stderr:
                click.echo(stderr.decode(errors="replace"), nl=False, err=True)
            if finished:
                break
    except KeyboardInterrupt:
        supervisor.kill(task.id)

    if task.status == TaskStatus.COMPLETED:
        click.echo(green(f"Task {task.id[:8]} completed in {task.duration().total_seconds():.2f}s"))
    else:
        click.echo(red(f"Task {task.id[:8]} {task.status}: {task.error}"), err=True)

    stats = supervisor.stats()
    click.echo(dim(
        f"started={stats['total_started']} completed={stats['total_completed']} "
        f"failed={stats['total_failed']} killed={stats['total_killed']}"
    ))
    ctx.exit(0 if task.is_success() else (task.exit_code or 1))


def main():
    """Entry point for the ollama-code command."""
    cli(obj={})


if __name__ == "__main__":
    sys.exit(main())
