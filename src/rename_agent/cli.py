"""Command-line interface for the Rename Agent.

Typer CLI with Rich console output:
- Transactional class, method and variable renames
- Reference search without changes
- Single-file edit and write with durable backups
- Undo from the backup store
- Interactive shell when run without a command
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import CONFIG_FILE, AgentConfig, generate_example_config, load_config
from .console.diff_viewer import format_edit_result
from .console.session import SHELL_MARKER, run_shell
from .console.ui import RENAME_THEME, RenameConsole
from .errors import (
    BackupError,
    ConfigError,
    EditError,
    InvalidSymbolError,
    PathValidationError,
    RollbackIncompleteError,
    ScanError,
    TransactionActiveError,
)
from .models import ExitCode, NotSupportedResult, Outcome, RollbackResult, Symbol, SymbolKind
from .orchestrator import RefactorTransactionController
from .utils.backups import BackupStore
from .utils.file_ops import FileManager
from .utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

console = Console(theme=RENAME_THEME)
app = typer.Typer(
    name="rename-agent",
    help="Rename classes, methods and variables across a source tree, all or nothing",
    invoke_without_command=True,
    rich_markup_mode="rich",
)


@dataclass
class AppState:
    """Per-invocation settings shared with every command."""

    project_path: Path
    config: AgentConfig
    verbose: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[info]Rename Agent[/info] v{__version__}")
        raise typer.Exit()


def _exit(code: ExitCode) -> NoReturn:
    raise typer.Exit(int(code))


@app.callback(invoke_without_command=True)
def default_command(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(
        None,
        "--project", "-p",
        help="Path to the project directory (default: current directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show debug logging on the console",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Rename symbols across a project with preview, confirmation and rollback.

    When run without a command, opens an interactive shell accepting the
    same commands.

    Examples:
        rename-agent rename-class Foo Baz
        rename-agent -p ./my-project rename-method getUser fetchUser --class UserService
        rename-agent find class Foo
        rename-agent                           # interactive shell
    """
    if ctx.resilient_parsing:
        return

    in_shell = ctx.obj == SHELL_MARKER
    project_path = Path(project).resolve() if project else Path.cwd().resolve()

    if not project_path.is_dir():
        console.print(f"[error]Project path does not exist:[/error] {project_path}")
        _exit(ExitCode.USAGE)

    setup_logging(
        project_path / ".agentcli" / "logs",
        level="DEBUG",
        console_level="DEBUG" if verbose else "WARNING",
        force=True,
    )

    try:
        config = load_config(project_path)
    except ConfigError as e:
        console.print(f"[error]Configuration error:[/error] {e}")
        _exit(ExitCode.USAGE)

    ctx.obj = AppState(project_path=project_path, config=config, verbose=verbose)

    if ctx.invoked_subcommand is None and not in_shell:
        try:
            run_shell(app, project_path, verbose=verbose)
        except KeyboardInterrupt:
            console.print("\n[info]Goodbye![/info]")


# =============================================================================
# Rename commands
# =============================================================================


YES_OPTION = typer.Option(False, "--yes", "-y", help="Apply without asking for confirmation")


@app.command("rename-class")
def rename_class(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current class name"),
    new_name: str = typer.Argument(..., help="New class name"),
    yes: bool = YES_OPTION,
) -> None:
    """Rename a class everywhere and rename its defining file.

    Example:
        rename-agent rename-class Foo Baz
    """
    _run_rename(ctx.obj, SymbolKind.CLASS, old_name, new_name, None, yes)


@app.command("rename-method")
def rename_method(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current method name"),
    new_name: str = typer.Argument(..., help="New method name"),
    class_name: Optional[str] = typer.Option(
        None,
        "--class", "-c",
        help="Only search files named after this class",
    ),
    yes: bool = YES_OPTION,
) -> None:
    """Rename a method at every call and definition site.

    Example:
        rename-agent rename-method getUser fetchUser --class UserService
    """
    _run_rename(ctx.obj, SymbolKind.METHOD, old_name, new_name, class_name, yes)


@app.command("rename-variable")
def rename_variable(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current variable name"),
    new_name: str = typer.Argument(..., help="New variable name"),
    scope: Optional[str] = typer.Option(
        None,
        "--scope", "-s",
        help="Only rename inside this file (project-relative path)",
    ),
    yes: bool = YES_OPTION,
) -> None:
    """Rename a variable, optionally limited to one file.

    Example:
        rename-agent rename-variable count total --scope src/Counter.java
    """
    _run_rename(ctx.obj, SymbolKind.VARIABLE, old_name, new_name, scope, yes)


@app.command("rename-package")
def rename_package(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current package name"),
    new_name: str = typer.Argument(..., help="New package name"),
    yes: bool = YES_OPTION,
) -> None:
    """Rename a package (not yet supported; changes nothing)."""
    _run_rename(ctx.obj, SymbolKind.PACKAGE, old_name, new_name, None, yes)


def _run_rename(
    state: AppState,
    kind: SymbolKind,
    old_name: str,
    new_name: str,
    scope: Optional[str],
    yes: bool,
) -> None:
    ui = RenameConsole(console)

    try:
        symbol = Symbol(kind, old_name, new_name, scope)
    except InvalidSymbolError as e:
        ui.show_error(str(e))
        _exit(ExitCode.USAGE)

    controller = RefactorTransactionController(
        project_path=state.project_path,
        config=state.config,
        console=ui,
        auto_confirm=yes,
    )

    try:
        outcome = controller.execute(symbol)
    except TransactionActiveError as e:
        ui.show_error(str(e))
        _exit(ExitCode.USAGE)
    except RollbackIncompleteError as e:
        ui.show_error(str(e))
        for path in e.failed_paths:
            console.print(f"  [error]✗[/error] {path}")
        _exit(ExitCode.ROLLBACK_INCOMPLETE)

    ui.show_outcome(outcome)
    _exit(_exit_code_for(outcome))


def _exit_code_for(outcome: Outcome) -> ExitCode:
    if isinstance(outcome, RollbackResult) and not outcome.complete:
        return ExitCode.ROLLBACK_INCOMPLETE
    return outcome.exit_code


# =============================================================================
# Lookup
# =============================================================================


@app.command()
def find(
    ctx: typer.Context,
    kind: SymbolKind = typer.Argument(..., case_sensitive=False, help="class, method or variable"),
    name: str = typer.Argument(..., help="Name to look up"),
    class_name: Optional[str] = typer.Option(None, "--class", "-c", help="Class scope for methods"),
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="File scope for variables"),
) -> None:
    """Show every reference to a symbol without changing anything.

    Example:
        rename-agent find method getUser --class UserService
    """
    state: AppState = ctx.obj
    ui = RenameConsole(console)

    if kind is SymbolKind.PACKAGE:
        ui.show_outcome(NotSupportedResult())
        _exit(ExitCode.NOT_SUPPORTED)

    try:
        symbol = Symbol(kind, name, scope=class_name if kind is SymbolKind.METHOD else scope)
    except InvalidSymbolError as e:
        ui.show_error(str(e))
        _exit(ExitCode.USAGE)

    controller = RefactorTransactionController(
        project_path=state.project_path,
        config=state.config,
        console=ui,
    )

    try:
        reference_set, preview = controller.preview(symbol)
    except ScanError as e:
        ui.show_error(f"Scan failed: {e}")
        _exit(ExitCode.SCAN_FAILED)

    if not reference_set:
        ui.show_warning(f"No references found for {symbol.label}")
        _exit(ExitCode.NO_REFERENCES)

    ui.show_preview(preview)


# =============================================================================
# Single-file operations
# =============================================================================


@app.command()
def edit(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="File to edit (project-relative path)"),
    old_string: str = typer.Argument(..., help="Exact text to replace"),
    new_string: str = typer.Argument(..., help="Replacement text"),
    replace_all: bool = typer.Option(False, "--all", "-a", help="Replace every occurrence"),
    yes: bool = YES_OPTION,
) -> None:
    """Replace text in one file after showing a diff. The file is backed up first.

    Example:
        rename-agent edit src/App.java "int count" "long count"
    """
    state: AppState = ctx.obj
    ui = RenameConsole(console)
    manager = _file_manager(state)

    try:
        path = manager.validator.validate(file)
        content, new_content, occurrences = manager.plan_replace(
            path, old_string, new_string, replace_all=replace_all
        )
    except (PathValidationError, EditError) as e:
        ui.show_error(str(e))
        _exit(ExitCode.USAGE)

    if occurrences == 0:
        ui.show_error(f"String not found in {file}: {old_string}")
        _exit(ExitCode.NO_REFERENCES)
    if occurrences > 1 and not replace_all:
        ui.show_error(f"String found {occurrences} times in {file}; use --all or give more context")
        _exit(ExitCode.USAGE)

    ui.show_diff(manager.validator.relative(path), content, new_content)

    if not yes and not ui.confirm("Apply this edit?"):
        ui.show_warning("Edit cancelled. No files were modified.")
        _exit(ExitCode.CANCELLED)

    try:
        result = manager.replace_in_file(path, old_string, new_string, replace_all=replace_all)
    except (EditError, BackupError) as e:
        ui.show_error(str(e))
        _exit(ExitCode.ROLLED_BACK)

    _show_file_result(ui, manager, result)
    if not result.success:
        _exit(ExitCode.ROLLED_BACK)


@app.command()
def write(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="File to write (project-relative path)"),
    from_file: Optional[Path] = typer.Option(
        None,
        "--from-file", "-f",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Read the new content from this file instead of stdin",
    ),
    yes: bool = YES_OPTION,
) -> None:
    """Overwrite or create one file. An existing file is backed up first.

    Example:
        rename-agent write src/Config.java --from-file /tmp/Config.java
    """
    state: AppState = ctx.obj
    ui = RenameConsole(console)
    manager = _file_manager(state)

    try:
        path = manager.validator.validate(file)
    except PathValidationError as e:
        ui.show_error(str(e))
        _exit(ExitCode.USAGE)

    if from_file is not None:
        try:
            content = from_file.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            ui.show_error(f"Cannot read {from_file}: not valid UTF-8")
            _exit(ExitCode.USAGE)
        except OSError as e:
            ui.show_error(f"Cannot read {from_file}: {e}")
            _exit(ExitCode.USAGE)
    else:
        content = sys.stdin.read()

    current = ""
    if path.exists():
        try:
            current = manager.read_file(path)
        except EditError as e:
            ui.show_error(str(e))
            _exit(ExitCode.USAGE)

    ui.show_diff(manager.validator.relative(path), current, content)

    if not yes and not ui.confirm(f"Write {manager.validator.relative(path).as_posix()}?"):
        ui.show_warning("Write cancelled. No files were modified.")
        _exit(ExitCode.CANCELLED)

    try:
        result = manager.write_file(path, content)
    except (EditError, BackupError) as e:
        ui.show_error(str(e))
        _exit(ExitCode.ROLLED_BACK)

    _show_file_result(ui, manager, result)


def _file_manager(state: AppState) -> FileManager:
    store = BackupStore(state.project_path, max_backups_per_file=state.config.max_backups_per_file)
    return FileManager(
        project_path=state.project_path,
        backup_store=store,
        max_file_size_mb=state.config.max_file_size_mb,
    )


def _show_file_result(ui: RenameConsole, manager: FileManager, result) -> None:
    ui.console.print(format_edit_result(result, manager.validator.relative(result.path)))


# =============================================================================
# Undo and configuration
# =============================================================================


@app.command()
def undo(
    ctx: typer.Context,
    list_only: bool = typer.Option(False, "--list", "-l", help="List backups instead of restoring"),
    clear: bool = typer.Option(False, "--clear", help="Delete every backup"),
    yes: bool = YES_OPTION,
) -> None:
    """Restore the most recent backup.

    Examples:
        rename-agent undo
        rename-agent undo --list
    """
    state: AppState = ctx.obj
    ui = RenameConsole(console)
    store = BackupStore(state.project_path, max_backups_per_file=state.config.max_backups_per_file)

    if list_only:
        ui.show_backups(store.list_backups(), state.project_path)
        return

    if clear:
        if not yes and not ui.confirm("Delete every backup? Undo will no longer be possible."):
            ui.show_warning("Nothing deleted.")
            _exit(ExitCode.CANCELLED)
        store.clear_all()
        ui.show_success("All backups deleted")
        return

    history = store.history()
    if not history:
        ui.show_warning("Nothing to undo.")
        _exit(ExitCode.NO_REFERENCES)

    entry = history[0]
    try:
        restored = store.restore_last()
    except BackupError as e:
        ui.show_error(str(e))
        _exit(ExitCode.ROLLED_BACK)
    if not restored:
        ui.show_error(f"Backup missing for {entry.original_path}; undo failed")
        _exit(ExitCode.ROLLED_BACK)

    ui.show_success(f"Restored {_relative(entry.original_path, state.project_path)} from {entry.timestamp}")


@app.command("config")
def show_config(
    ctx: typer.Context,
    init: bool = typer.Option(False, "--init", help=f"Write an example {CONFIG_FILE}"),
) -> None:
    """Show the effective configuration or create an example file."""
    state: AppState = ctx.obj

    if init:
        path = state.project_path / CONFIG_FILE
        if path.exists():
            console.print(f"[warning]{CONFIG_FILE} already exists:[/warning] {path}")
            _exit(ExitCode.USAGE)
        path.write_text(generate_example_config(), encoding="utf-8")
        console.print(f"[success]Created[/success] {path}")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="dim")
    table.add_column("Value")

    for key, value in state.config.to_dict().items():
        table.add_row(key, str(value))

    console.print(table)


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[warning]Interrupted by user[/warning]")
        sys.exit(130)
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[error]Unexpected error:[/error] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
