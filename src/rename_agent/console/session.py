"""Interactive shell for the rename agent.

Reads one command per line and runs it through the same typer
application as the command line, so every command behaves identically
in both places.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional

import typer
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style

from .. import __version__
from ..config import STATE_DIR
from ..utils.logger import get_logger
from .autocomplete import ShellCompleter
from .ui import RenameConsole

logger = get_logger(__name__)

# Custom prompt style
PROMPT_STYLE = Style.from_dict({
    "prompt": "#00d7ff bold",
})

EXIT_COMMANDS = ("exit", "quit")
CLEAR_COMMANDS = ("clear", "cls")

# Marks a context created from inside the shell
SHELL_MARKER = "rename-agent-shell"


class RenameShell:
    """Line-oriented shell that dispatches to the typer commands."""

    def __init__(
        self,
        app: typer.Typer,
        project_path: Path,
        *,
        ui: Optional[RenameConsole] = None,
        global_args: Optional[list[str]] = None,
        session: Optional[PromptSession] = None,
    ) -> None:
        """Initialize the shell.

        Args:
            app: Typer application whose commands are run
            project_path: Project the shell works on
            ui: Console for shell messages
            global_args: Options prepended to every command line, such as
                ``--project``, so each command targets the same project
            session: Prompt session (built with file history by default)
        """
        self.command = typer.main.get_command(app)
        self.project_path = Path(project_path).resolve()
        self.ui = ui or RenameConsole()
        self.global_args = list(global_args or [])
        self._session = session

    @property
    def session(self) -> PromptSession:
        if self._session is None:
            history_dir = self.project_path / STATE_DIR
            history_dir.mkdir(parents=True, exist_ok=True)
            commands = list(self.command.list_commands(typer.Context(self.command)))

            self._session = PromptSession(
                history=FileHistory(str(history_dir / "command_history")),
                auto_suggest=AutoSuggestFromHistory(),
                completer=ShellCompleter(self.project_path, commands + ["help", "exit", "quit", "clear"]),
                style=PROMPT_STYLE,
                complete_while_typing=False,
            )
        return self._session

    def run(self) -> None:
        """Read and run commands until ``exit`` or end of input."""
        self.ui.show_banner(__version__)
        self.ui.show_info(f"Project: {self.project_path}")
        self.ui.console.print("[muted]Type 'help' for commands, 'exit' to quit.[/muted]\n")

        while True:
            try:
                line = self.session.prompt([("class:prompt", "rename> ")])
            except KeyboardInterrupt:
                self.ui.console.print("[warning]Interrupted. Type 'exit' to quit.[/warning]")
                continue
            except EOFError:
                break

            if not self.handle_line(line):
                break

        self.ui.console.print("\n[info]Goodbye![/info]")

    def handle_line(self, line: str) -> bool:
        """Run one input line.

        Returns:
            False when the shell should stop
        """
        text = line.strip()
        if not text:
            return True

        lower = text.lower()
        if lower in EXIT_COMMANDS:
            return False
        if lower == "help":
            self.ui.show_help()
            return True
        if lower in CLEAR_COMMANDS:
            self.ui.clear_screen()
            return True

        try:
            args = shlex.split(text)
        except ValueError as e:
            self.ui.show_error(f"Cannot parse command: {e}")
            return True

        self.dispatch(args)
        return True

    def dispatch(self, args: list[str]) -> int:
        """Run a command through the typer application.

        Errors from one command are reported and never end the shell.

        Returns:
            The command's exit code
        """
        logger.debug(f"Shell command: {args}")
        try:
            self.command.main(
                args=self.global_args + args,
                prog_name="rename-agent",
                standalone_mode=True,
                obj=SHELL_MARKER,
            )
        except SystemExit as e:
            return _exit_status(e.code)
        except Exception as e:
            logger.exception(f"Shell command failed: {args}")
            self.ui.show_error(f"{type(e).__name__}: {e}")
            return 1

        return 0


def _exit_status(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def run_shell(
    app: typer.Typer,
    project_path: Path,
    *,
    verbose: bool = False,
) -> None:
    """Open the interactive shell on a project.

    Args:
        app: Typer application providing the commands
        project_path: Project root
        verbose: Pass ``--verbose`` to every command
    """
    global_args = ["--project", str(project_path)]
    if verbose:
        global_args.append("--verbose")

    RenameShell(app, project_path, global_args=global_args).run()
