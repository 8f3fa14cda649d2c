"""Diff rendering for single-file edits and writes.

Shows the change before it is written:
- Red background for deleted lines
- Green background for added lines
- File path header
"""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Optional, Union

from rich.text import Text

from ..models import EditResult, WriteResult

__all__ = ["create_diff_text", "diff_stats", "format_edit_result"]


def _unified(old_string: str, new_string: str, path: Optional[Path], context_lines: int) -> list[str]:
    label = path.as_posix() if path is not None else "file"
    return list(difflib.unified_diff(
        old_string.splitlines(keepends=True),
        new_string.splitlines(keepends=True),
        fromfile=f"a/{label}",
        tofile=f"b/{label}",
        lineterm="",
        n=context_lines,
    ))


def create_diff_text(
    old_string: str,
    new_string: str,
    *,
    path: Optional[Path] = None,
    context_lines: int = 3,
) -> Text:
    """Create a Rich Text object with a colored unified diff.

    Args:
        old_string: Original text
        new_string: New text
        path: File shown in the diff header
        context_lines: Number of context lines around changes

    Returns:
        Rich Text with red/green highlighting, empty when nothing changes
    """
    result = Text()

    for line in _unified(old_string, new_string, path, context_lines):
        display_line = line.rstrip("\n")

        if line.startswith("+++") or line.startswith("---"):
            result.append(display_line + "\n", style="dim")
        elif line.startswith("@@"):
            result.append(display_line + "\n", style="bold cyan")
        elif line.startswith("+"):
            result.append(display_line + "\n", style="green on #1a3a1a")
        elif line.startswith("-"):
            result.append(display_line + "\n", style="red on #3a1a1a")
        else:
            result.append(display_line + "\n", style="dim")

    return result


def diff_stats(old_string: str, new_string: str) -> tuple[int, int]:
    """Count (added, removed) lines between two texts."""
    added = removed = 0
    for line in _unified(old_string, new_string, None, 0):
        if line.startswith("+++") or line.startswith("---"):
            continue
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            removed += 1
    return added, removed


def format_edit_result(result: Union[EditResult, WriteResult], display_path: Optional[Path] = None) -> Text:
    """One-line status for a finished edit or write."""
    content = Text()
    icon = "✓" if result.success else "✗"
    content.append(f"{icon} ", style="green bold" if result.success else "red bold")

    if isinstance(result, EditResult):
        content.append("Edited: ", style="dim")
    elif result.created:
        content.append("Created: ", style="dim")
    else:
        content.append("Wrote: ", style="dim")

    content.append((display_path or result.path).as_posix(), style="bold cyan")
    content.append(f"  {result.message}", style="dim" if result.success else "red")

    if result.backup is not None:
        content.append(f"\n  backup: {result.backup.backup_path.name}", style="dim")

    return content
