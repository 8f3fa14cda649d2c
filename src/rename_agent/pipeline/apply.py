"""Mutation applier: whole-word substitution and defining-file rename."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..errors import FileRenameError
from ..models import ReferenceSet, Symbol, SymbolKind
from ..utils.logger import get_logger
from .scan import word_pattern

logger = get_logger(__name__)


class MutationApplier:
    """Computes new file contents and renames defining files."""

    def apply(self, content: str, symbol: Symbol) -> str:
        """Replace every whole-word occurrence of the old name.

        The substitution runs over the full content at once, so several
        occurrences on one line are all replaced in a single pass. The
        new name is inserted literally.

        Args:
            content: Current file content
            symbol: Symbol being renamed

        Returns:
            The rewritten content
        """
        return word_pattern(symbol.old_name).sub(lambda _: symbol.new_name, content)

    def count(self, content: str, symbol: Symbol) -> int:
        """Number of whole-word occurrences of the old name."""
        return len(word_pattern(symbol.old_name).findall(content))

    def defining_file(self, reference_set: ReferenceSet, symbol: Symbol) -> Optional[Path]:
        """The file named after a renamed class, if the scan touched one."""
        if symbol.kind is not SymbolKind.CLASS:
            return None

        for path in reference_set.files:
            if path.stem == symbol.old_name:
                return path
        return None

    def renamed_path(self, path: Path, symbol: Symbol) -> Path:
        """Where the defining file ends up: same directory and suffix, new stem."""
        return path.with_name(symbol.new_name + path.suffix)

    def rename_file(self, path: Path, symbol: Symbol) -> Path:
        """Rename a defining file to match the new class name.

        Raises:
            FileRenameError: Target already exists or the rename failed
        """
        target = self.renamed_path(path, symbol)
        if target.exists():
            raise FileRenameError(
                f"Cannot rename {path.name} to {target.name}: target already exists",
                details={"source": str(path), "target": str(target)},
            )

        try:
            path.rename(target)
        except OSError as e:
            raise FileRenameError(
                f"Failed to rename {path.name} to {target.name}: {e}",
                details={"source": str(path), "target": str(target)},
            ) from e

        logger.info(f"Renamed file {path} -> {target}")
        return target
