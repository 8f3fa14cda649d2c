"""Rich console collaborator for rename transactions.

Renders everything the user sees during a rename:
- Scan and preview output
- Yes/no confirmation
- Per-file progress while applying and rolling back
- One distinct message per terminal outcome
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Optional

from prompt_toolkit import prompt
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from ..models import (
    BackupEntry,
    CancelledResult,
    NoReferencesResult,
    NotSupportedResult,
    Outcome,
    RollbackResult,
    ScanFailedResult,
    Symbol,
    TransactionResult,
)
from ..pipeline.reporting import Preview
from .diff_viewer import create_diff_text, diff_stats

# Custom theme for consistent styling
RENAME_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "red bold",
    "success": "green bold",
    "muted": "dim",
})

YES_ANSWERS = ("y", "yes")


class RenameConsole:
    """Console output and confirmation for the rename agent."""

    def __init__(
        self,
        console: Optional[Console] = None,
        *,
        interactive: Optional[bool] = None,
    ) -> None:
        """Initialize the console.

        Args:
            console: Rich console to print to (a themed one by default)
            interactive: Use prompt_toolkit for confirmations. Detected from
                stdin when omitted; piped input is read line by line.
        """
        self.console = console or Console(theme=RENAME_THEME)
        self.interactive = interactive

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def ask(self, message: str) -> str:
        """Read one answer from the user. EOF reads as an empty answer."""
        interactive = self.interactive
        if interactive is None:
            interactive = sys.stdin is not None and sys.stdin.isatty()

        try:
            if interactive:
                return prompt(f"{message} ")
            self.console.print(f"{escape(message)} ", end="")
            line = sys.stdin.readline() if sys.stdin is not None else ""
            return line
        except EOFError:
            return ""

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question. Only ``y`` and ``yes`` count as yes."""
        answer = self.ask(f"{question} (y/n):")
        return answer.strip().lower() in YES_ANSWERS

    # ------------------------------------------------------------------
    # Transaction progress
    # ------------------------------------------------------------------

    def show_scanning(self, symbol: Symbol) -> None:
        self.console.print(f"[info]Scanning for {escape(symbol.label)}...[/info]")

    def show_preview(self, preview: Preview) -> None:
        """Render the preview, highlighting the name being replaced."""
        text = Text(preview.to_text())
        text.highlight_regex(
            rf"(?<![\w$]){re.escape(preview.symbol.old_name)}(?![\w$])",
            style="bold yellow",
        )
        symbol = preview.symbol
        if symbol.is_rename:
            title = f"Rename {symbol.label} -> {symbol.new_name}"
        else:
            title = f"References to {symbol.label}"

        self.console.print()
        self.console.print(Panel(text, title=f"[bold]{escape(title)}[/bold]", border_style="cyan"))

    def show_applying(self) -> None:
        self.console.print("[info]Applying changes...[/info]")

    def show_file_applied(self, path: Path, count: int) -> None:
        noun = "reference" if count == 1 else "references"
        self.console.print(f"  [success]✓[/success] {escape(path.as_posix())} [muted]({count} {noun})[/muted]")

    def show_file_renamed(self, old: Path, new: Path) -> None:
        self.console.print(
            f"  [success]✓[/success] Renamed {escape(old.as_posix())} -> {escape(new.as_posix())}"
        )

    def show_rollback_started(self, error: str) -> None:
        self.console.print(f"\n[error]✗ Apply failed:[/error] {escape(error)}")
        self.console.print("[warning]Rolling back changes...[/warning]")

    def show_file_restored(self, path: Path) -> None:
        self.console.print(f"  [info]↺[/info] Restored {escape(path.as_posix())}")

    def show_restore_failed(self, path: Path, reason: str) -> None:
        self.console.print(
            f"  [error]✗[/error] Could not restore {escape(path.as_posix())}: {escape(reason)}"
        )

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def show_outcome(self, outcome: Outcome) -> None:
        """Print the final message for a rename command."""
        if isinstance(outcome, TransactionResult):
            self._show_committed(outcome)
        elif isinstance(outcome, RollbackResult):
            self._show_rolled_back(outcome)
        elif isinstance(outcome, NoReferencesResult):
            label = outcome.symbol.label if outcome.symbol else "symbol"
            self.console.print(f"[warning]No references found for {escape(label)}. Nothing to do.[/warning]")
        elif isinstance(outcome, CancelledResult):
            self.console.print("[warning]Refactoring cancelled. No files were modified.[/warning]")
        elif isinstance(outcome, NotSupportedResult):
            self.console.print(f"[warning]{escape(outcome.message)}[/warning]")
        elif isinstance(outcome, ScanFailedResult):
            self.console.print(f"[error]Scan failed:[/error] {escape(outcome.error)}")
            self.console.print("[muted]No files were modified.[/muted]")

    def _show_committed(self, result: TransactionResult) -> None:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="cyan")
        table.add_row("Files modified:", str(result.files_modified))
        table.add_row("References replaced:", str(result.references_replaced))
        if result.renamed_file is not None:
            old, new = result.renamed_file
            table.add_row("File renamed:", f"{old.name} -> {new.name}")

        self.console.print()
        self.console.print(Panel(
            table,
            title="[success]Refactoring complete[/success]",
            border_style="green",
        ))

    def _show_rolled_back(self, result: RollbackResult) -> None:
        lines = Text()
        lines.append("Error: ", style="bold")
        lines.append(result.error + "\n")
        lines.append(f"Files restored: {len(result.restored)}")

        if result.complete:
            lines.append("\nThe project is unchanged.", style="dim")
        else:
            lines.append("\nSome files could not be restored:", style="red bold")
            for path in result.failed_restores:
                lines.append(f"\n  ✗ {path}", style="red")

        self.console.print()
        self.console.print(Panel(
            lines,
            title="[error]Refactoring failed and was rolled back[/error]",
            border_style="red",
        ))

    # ------------------------------------------------------------------
    # Edit, write and undo
    # ------------------------------------------------------------------

    def show_diff(self, path: Path, old_content: str, new_content: str) -> None:
        """Render a unified diff of a pending single-file change."""
        added, removed = diff_stats(old_content, new_content)
        self.console.print(Panel(
            create_diff_text(old_content, new_content, path=path),
            title=f"[bold]{escape(path.as_posix())}[/bold] [green]+{added}[/green] [red]-{removed}[/red]",
            border_style="blue",
        ))

    def show_backups(self, entries: list[BackupEntry], root: Path) -> None:
        if not entries:
            self.console.print("[muted]No backups found.[/muted]")
            return

        table = Table(title="Backups", show_header=True, header_style="bold cyan")
        table.add_column("File", style="cyan")
        table.add_column("Timestamp", style="dim")
        table.add_column("Backup")

        for entry in entries:
            table.add_row(
                _relative(entry.original_path, root),
                entry.timestamp,
                _relative(entry.backup_path, root),
            )

        self.console.print(table)

    # ------------------------------------------------------------------
    # Generic messages
    # ------------------------------------------------------------------

    def show_banner(self, version: str) -> None:
        self.console.print(Panel(
            f"[bold cyan]Rename Agent[/bold cyan] v{version}\n"
            "[dim]Transactional symbol renaming across a source tree[/dim]",
            border_style="cyan",
        ))

    def show_help(self) -> None:
        help_text = """
## Commands

| Command | Description |
|---------|-------------|
| **rename-class** OLD NEW | Rename a class and its defining file |
| **rename-method** OLD NEW [--class NAME] | Rename a method at its call sites |
| **rename-variable** OLD NEW [--scope FILE] | Rename a variable |
| **rename-package** OLD NEW | Not yet supported |
| **find** KIND NAME | Show references without changing anything |
| **edit** FILE OLD NEW [--all] | Replace text in one file |
| **write** FILE [--from-file SRC] | Overwrite or create one file |
| **undo** [--list] [--clear] | Restore the last backup |
| **config** [--init] | Show settings or write an example config |
| **help** | Show this help message |
| **clear** | Clear the screen |
| **exit** / **quit** | Leave the shell |
"""
        self.console.print(Panel(Markdown(help_text), title="Help", border_style="yellow"))

    def show_error(self, error: str) -> None:
        self.console.print(f"[error]Error:[/error] {escape(error)}")

    def show_success(self, message: str) -> None:
        self.console.print(f"[success]Success:[/success] {escape(message)}")

    def show_warning(self, message: str) -> None:
        self.console.print(f"[warning]Warning:[/warning] {escape(message)}")

    def show_info(self, message: str) -> None:
        self.console.print(f"[info]{escape(message)}[/info]")

    def clear_screen(self) -> None:
        self.console.clear()


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)
