"""Reference scanning pipeline stage.

Matching is lexical: the old name must appear as a whole identifier. Hits
inside string literals and comments are reported like any other.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

from ..config import AgentConfig
from ..errors import PathValidationError, ScanError
from ..models import Reference, ReferenceSet, Symbol, SymbolKind
from ..utils.logger import get_logger
from ..utils.paths import PathValidator

logger = get_logger(__name__)


def word_pattern(name: str) -> re.Pattern[str]:
    """Whole-identifier pattern; never matches inside a longer identifier."""
    return re.compile(r"(?<![\w$])" + re.escape(name) + r"(?![\w$])")


def call_pattern(name: str) -> re.Pattern[str]:
    """Identifier followed by an opening parenthesis (call or definition site)."""
    return re.compile(r"(?<![\w$])" + re.escape(name) + r"\s*\(")


class ReferenceScanner:
    """Finds every line referencing a symbol under a project root."""

    def __init__(self, config: Optional[AgentConfig] = None) -> None:
        """Initialize scanner.

        Args:
            config: Effective settings (ignored dirs, extensions, size limit)
        """
        self.config = config or AgentConfig()

    def scan(self, root: Path, symbol: Symbol) -> ReferenceSet:
        """Scan the tree for references to a symbol.

        Args:
            root: Project root
            symbol: Symbol being renamed

        Returns:
            ReferenceSet sorted by path, then line number

        Raises:
            ScanError: A candidate file or the scope file cannot be read
        """
        root = Path(root).resolve()
        logger.info(f"Scanning {root} for {symbol.label}")

        files = self._files_for(root, symbol)
        pattern = self.pattern_for(symbol)

        references: list[Reference] = []
        for path in files:
            content = self._read(path)
            for index, line in enumerate(content.split("\n"), start=1):
                if pattern.search(line):
                    references.append(Reference(file=path, line_number=index, line_text=line.strip()))

        reference_set = ReferenceSet.from_references(references)
        logger.info(
            f"Found {len(reference_set)} references in {reference_set.file_count} files "
            f"({len(files)} files searched)"
        )
        return reference_set

    def pattern_for(self, symbol: Symbol) -> re.Pattern[str]:
        """Matching predicate for a symbol kind."""
        if symbol.kind is SymbolKind.METHOD:
            return call_pattern(symbol.old_name)
        return word_pattern(symbol.old_name)

    def candidate_files(self, root: Path) -> list[Path]:
        """List every scannable file under root in sorted order.

        Ignored directories are pruned, suffixes are filtered against the
        configured extensions (an empty list accepts every file) and files
        at or above the size ceiling are skipped.
        """
        root = Path(root).resolve()
        ignored = set(self.config.ignore_dirs)
        extensions = set(self.config.extensions)
        candidates: list[Path] = []

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in ignored)

            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if extensions and path.suffix not in extensions:
                    continue
                if not path.is_file():
                    continue
                if self._too_large(path):
                    continue
                candidates.append(path)

        return candidates

    def _files_for(self, root: Path, symbol: Symbol) -> list[Path]:
        if symbol.kind is SymbolKind.VARIABLE and symbol.scope:
            scope_file = self._resolve_scope_file(root, symbol.scope)
            return [] if self._too_large(scope_file) else [scope_file]

        files = self.candidate_files(root)

        if symbol.kind is SymbolKind.METHOD and symbol.scope:
            files = [f for f in files if f.stem == symbol.scope]
            logger.debug(f"Method scope {symbol.scope} narrowed search to {len(files)} files")

        return files

    def _resolve_scope_file(self, root: Path, scope: str) -> Path:
        try:
            path = PathValidator(root).validate(scope)
        except PathValidationError as e:
            raise ScanError(str(e), details=e.details) from e

        if not path.is_file():
            raise ScanError.scope_not_found(scope)
        return path

    def _too_large(self, path: Path) -> bool:
        try:
            size = path.stat().st_size
        except OSError as e:
            raise ScanError.unreadable(path, str(e)) from e

        if size >= self.config.max_file_size_bytes:
            logger.debug(f"Skipping large file ({size} bytes): {path}")
            return True
        return False

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ScanError.unreadable(path, f"not valid UTF-8 ({e.reason} at byte {e.start})") from e
        except OSError as e:
            raise ScanError.unreadable(path, str(e)) from e
