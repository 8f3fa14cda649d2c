"""File operations with safety features and backup support.

Single-file edits and writes go through the durable BackupStore so the
``undo`` command can revert them. The rename transaction uses the raw
``read_text``/``write_text`` pair and keeps its own in-memory snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..errors import EditError
from ..models import EditResult, WriteResult
from .backups import BackupStore
from .logger import get_logger
from .paths import PathValidator

logger = get_logger(__name__)


@dataclass
class FileManager:
    """Manages file operations with safety features."""

    project_path: Path
    backup_store: Optional[BackupStore] = None
    max_file_size_mb: int = 10
    backup_enabled: bool = True
    validator: PathValidator = field(init=False)

    def __post_init__(self) -> None:
        """Resolve the project and create the default backup store."""
        self.project_path = Path(self.project_path).resolve()
        if self.backup_store is None:
            self.backup_store = BackupStore(self.project_path)
        self.validator = PathValidator(self.project_path)

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    # ------------------------------------------------------------------
    # Raw I/O
    # ------------------------------------------------------------------

    def read_text(self, file_path: Path) -> str:
        """Read a whole file as UTF-8, keeping its line endings."""
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, file_path: Path, content: str) -> None:
        """Overwrite a file with UTF-8 text, no backup."""
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        logger.debug(f"Wrote {len(content)} chars to {file_path}")

    # ------------------------------------------------------------------
    # Checked operations
    # ------------------------------------------------------------------

    def read_file(self, file_path: Union[str, Path]) -> str:
        """Read a project file with path and size checks.

        Args:
            file_path: Project-relative or absolute path

        Returns:
            File contents

        Raises:
            PathValidationError: Path outside the project or sensitive
            EditError: Missing, too large, or unreadable
        """
        path = self.validator.validate(file_path)

        if not path.is_file():
            raise EditError(f"File not found: {path}", details={"path": str(path)})

        file_size = path.stat().st_size
        if file_size > self.max_file_size_bytes:
            raise EditError(
                f"File too large ({file_size} bytes): {path}",
                details={"path": str(path), "size": file_size},
            )

        try:
            return self.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise EditError(f"Failed to read {path}: {e}", details={"path": str(path)}) from e

    def write_file(
        self,
        file_path: Union[str, Path],
        content: str,
        *,
        backup: bool = True,
    ) -> WriteResult:
        """Write content to a file, backing up the previous version.

        Args:
            file_path: Project-relative or absolute path
            content: Content to write
            backup: Whether to create a durable backup first

        Returns:
            WriteResult describing the write

        Raises:
            PathValidationError: Path outside the project or sensitive
            BackupError: The backup could not be created (nothing written)
            EditError: The write failed
        """
        path = self.validator.validate(file_path)
        exists = path.exists()

        entry = None
        if backup and self.backup_enabled and exists:
            entry = self.backup_store.backup(path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self.write_text(path, content)
        except OSError as e:
            raise EditError(f"Failed to write {path}: {e}", details={"path": str(path)}) from e

        message = "File updated" if exists else "File created"
        if entry is not None:
            message += f" (backup: {entry.backup_path.name})"
        logger.info(f"{message}: {path}")

        return WriteResult(path=path, success=True, message=message, created=not exists, backup=entry)

    def plan_replace(
        self,
        file_path: Union[str, Path],
        old_string: str,
        new_string: str,
        *,
        replace_all: bool = False,
    ) -> tuple[str, str, int]:
        """Compute a string replacement without writing.

        Returns:
            Tuple of (original content, new content, occurrences found)
        """
        if not old_string:
            raise EditError("Search string cannot be empty")

        content = self.read_file(file_path)
        occurrences = content.count(old_string)

        if occurrences == 0 or (occurrences > 1 and not replace_all):
            return content, content, occurrences

        if replace_all:
            new_content = content.replace(old_string, new_string)
        else:
            new_content = content.replace(old_string, new_string, 1)
        return content, new_content, occurrences

    def replace_in_file(
        self,
        file_path: Union[str, Path],
        old_string: str,
        new_string: str,
        *,
        replace_all: bool = False,
    ) -> EditResult:
        """Replace a string in one file, backing it up first.

        A string found several times is only replaced when ``replace_all``
        is set; otherwise the edit is refused so the caller can give more
        context.

        Returns:
            EditResult (success False when the string is absent or ambiguous)
        """
        path = self.validator.validate(file_path)
        content, new_content, occurrences = self.plan_replace(
            path, old_string, new_string, replace_all=replace_all
        )

        if occurrences == 0:
            return EditResult(path=path, success=False, message=f"String not found: {old_string}")

        if occurrences > 1 and not replace_all:
            return EditResult(
                path=path,
                success=False,
                message=(
                    f"String found {occurrences} times; use replace-all or give more context"
                ),
            )

        result = self.write_file(path, new_content)
        replacements = occurrences if replace_all else 1

        return EditResult(
            path=path,
            success=True,
            message=f"Replaced {replacements} occurrence(s)",
            replacements=replacements,
            backup=result.backup,
        )
