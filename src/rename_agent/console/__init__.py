"""Console components.

- RenameConsole: Rich output and confirmation for rename transactions
- RenameShell: prompt_toolkit shell over the typer commands
- ShellCompleter: command and path completion for the shell
"""

from .ui import RenameConsole
from .autocomplete import ShellCompleter
from .session import RenameShell, run_shell

__all__ = [
    "RenameConsole",
    "ShellCompleter",
    "RenameShell",
    "run_shell",
]
