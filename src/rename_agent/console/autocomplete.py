"""Command and path completion for the interactive shell.

The first word completes to a command name; later words complete to
project-relative paths, which is what ``edit``, ``write`` and
``--scope`` take.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Sequence

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from ..config import DEFAULT_IGNORE_DIRS


class ShellCompleter(Completer):
    """Complete shell commands and project files."""

    def __init__(
        self,
        root_path: str | Path,
        commands: Sequence[str],
        *,
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        max_suggestions: int = 20,
    ) -> None:
        """Initialize the completer.

        Args:
            root_path: Project root for path completion
            commands: Command names offered for the first word
            ignore_dirs: Directory names never offered
            max_suggestions: Maximum number of path suggestions
        """
        self.root_path = Path(root_path).resolve()
        self.commands = sorted(commands)
        self.ignore_dirs = set(ignore_dirs)
        self.max_suggestions = max_suggestions
        self._file_cache: list[str] = []
        self._cache_valid = False

    def refresh_cache(self) -> None:
        """Re-walk the project tree."""
        paths: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root_path):
            dirnames[:] = sorted(
                d for d in dirnames if d not in self.ignore_dirs and not d.startswith(".")
            )
            rel_dir = Path(dirpath).relative_to(self.root_path)
            for name in sorted(filenames):
                paths.append((rel_dir / name).as_posix())
        self._file_cache = paths
        self._cache_valid = True

    def get_completions(
        self,
        document: Document,
        complete_event: CompleteEvent,
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        words = text.split()
        partial = "" if text.endswith(" ") or not words else words[-1]
        completing_command = len(words) == 0 or (len(words) == 1 and not text.endswith(" "))

        if completing_command:
            for name in self.commands:
                if name.startswith(partial):
                    yield Completion(name, start_position=-len(partial), display_meta="command")
            return

        if partial.startswith("-"):
            return

        if not self._cache_valid:
            self.refresh_cache()

        matches: list[tuple[int, str]] = []
        for path in self._file_cache:
            score = self._calculate_score(path, partial)
            if score > 0:
                matches.append((score, path))
        matches.sort(key=lambda x: (-x[0], x[1]))

        for _, path in matches[:self.max_suggestions]:
            yield Completion(path, start_position=-len(partial), display_meta="file")

    def _calculate_score(self, path: str, query: str) -> int:
        """Match score for a path against what has been typed so far."""
        if not query:
            return 1

        path_lower = path.lower()
        query_lower = query.lower()

        if path_lower == query_lower:
            return 100
        if path_lower.startswith(query_lower):
            return 80
        if path_lower.rsplit("/", 1)[-1].startswith(query_lower):
            return 70
        if query_lower in path_lower:
            return 50
        return 0
