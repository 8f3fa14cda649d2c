"""Durable, retention-capped backups with a global undo stack.

A backup of ``<project>/src/app/Foo.java`` is stored as
``<project>/.agentcli/backups/src/app/Foo.java.<timestamp>.backup``, so both
the original path and the timestamp can be recovered from the backup path
alone. The undo stack is persisted next to the backups in ``undo.json`` and
is shared by every command that overwrites files.
"""

from __future__ import annotations

import json
import re
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Union

from ..errors import BackupError
from ..models import BackupEntry
from .logger import get_logger

logger = get_logger(__name__)

BACKUP_DIR = Path(".agentcli") / "backups"
HISTORY_FILE = Path(".agentcli") / "undo.json"
BACKUP_SUFFIX = ".backup"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
TIMESTAMP_RE = re.compile(r"^\d{8}_\d{6}_\d{6}$")
MAX_BACKUPS_PER_FILE = 10


class BackupStore:
    """Creates, prunes, lists and restores file backups."""

    def __init__(
        self,
        project_root: Path,
        *,
        max_backups_per_file: int = MAX_BACKUPS_PER_FILE,
    ) -> None:
        """Initialize the store.

        Args:
            project_root: Project directory; backups live under it
            max_backups_per_file: Backups kept per original file
        """
        self.project_root = Path(project_root).resolve()
        self.backup_root = self.project_root / BACKUP_DIR
        self.history_file = self.project_root / HISTORY_FILE
        self.max_backups_per_file = max_backups_per_file
        self._last_stamp: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def backup(self, path: Path, *, prune: bool = True) -> BackupEntry:
        """Copy a file to a timestamped backup before it is overwritten.

        Args:
            path: File about to be overwritten
            prune: Enforce the retention cap now. Callers that may still
                discard the new backup pass False and call ``prune`` later.

        Returns:
            The new BackupEntry (also pushed on the undo stack)

        Raises:
            BackupError: File missing, outside the project, or copy failed
        """
        original = self._absolute(path)
        if not original.is_file():
            raise BackupError(
                f"Cannot back up missing file: {original}",
                details={"path": str(original)},
            )

        relative = self._relative(original)
        target_dir = self.backup_root / relative.parent

        timestamp = self._next_timestamp()
        backup_path = target_dir / f"{relative.name}.{timestamp}{BACKUP_SUFFIX}"
        while backup_path.exists():
            timestamp = self._next_timestamp()
            backup_path = target_dir / f"{relative.name}.{timestamp}{BACKUP_SUFFIX}"

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(original, backup_path)
        except OSError as e:
            raise BackupError(
                f"Failed to back up {original}: {e}",
                details={"path": str(original)},
            ) from e

        entry = BackupEntry(original_path=original, backup_path=backup_path, timestamp=timestamp)

        stack = self._load_stack()
        stack.append(entry)
        self._save_stack(stack)

        logger.debug(f"Created backup: {backup_path}")
        if prune:
            self.prune(original)
        return entry

    def restore_last(self) -> bool:
        """Pop the most recent backup and copy it over its original.

        Returns:
            False if the stack is empty or the backup file no longer exists
        """
        stack = self._load_stack()
        if not stack:
            logger.info("Undo requested with an empty undo stack")
            return False

        entry = stack.pop()
        self._save_stack(stack)
        return self.restore(entry)

    def restore(self, entry: BackupEntry) -> bool:
        """Copy a specific backup over its original path.

        Returns:
            False if the backup file no longer exists

        Raises:
            BackupError: The copy itself failed
        """
        if not entry.backup_path.exists():
            logger.warning(f"Backup no longer exists: {entry.backup_path}")
            return False

        try:
            entry.original_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(entry.backup_path, entry.original_path)
        except OSError as e:
            raise BackupError(
                f"Failed to restore {entry.original_path}: {e}",
                details={"path": str(entry.original_path), "backup": str(entry.backup_path)},
            ) from e

        logger.info(f"Restored {entry.original_path} from {entry.backup_path.name}")
        return True

    def list_backups(self, file: Optional[Union[str, Path]] = None) -> list[BackupEntry]:
        """List backups on disk, newest first.

        Args:
            file: Only list backups of this file (project-relative or absolute)

        Returns:
            Backup entries parsed from the backup file names
        """
        if not self.backup_root.exists():
            return []

        wanted = self._absolute(Path(file)) if file is not None else None
        entries = []
        for backup_path in self.backup_root.rglob(f"*{BACKUP_SUFFIX}"):
            entry = self.parse_backup_path(backup_path)
            if entry is None:
                continue
            if wanted is not None and entry.original_path != wanted:
                continue
            entries.append(entry)

        entries.sort(key=lambda e: (e.timestamp, str(e.original_path)), reverse=True)
        return entries

    def history(self) -> list[BackupEntry]:
        """Undo stack contents, most recent first."""
        return list(reversed(self._load_stack()))

    def forget(self, entry: BackupEntry) -> bool:
        """Remove an entry from the undo stack without restoring it."""
        stack = self._load_stack()
        if entry not in stack:
            return False
        stack.remove(entry)
        self._save_stack(stack)
        return True

    def discard(self, entry: BackupEntry) -> None:
        """Drop a backup entirely: its undo entry and its file."""
        self.forget(entry)
        try:
            entry.backup_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete {entry.backup_path}: {e}")
            return
        logger.debug(f"Discarded backup: {entry.backup_path}")

    def prune(self, path: Path) -> None:
        """Delete the oldest backups of a file beyond the retention cap."""
        original = self._absolute(path)
        backups = self.list_backups(original)
        stale = backups[self.max_backups_per_file:]
        if not stale:
            return

        for entry in stale:
            try:
                entry.backup_path.unlink(missing_ok=True)
                logger.debug(f"Pruned old backup: {entry.backup_path}")
            except OSError as e:
                logger.warning(f"Could not prune {entry.backup_path}: {e}")

        stale_set = set(stale)
        stack = self._load_stack()
        kept = [e for e in stack if e not in stale_set]
        if len(kept) != len(stack):
            self._save_stack(kept)

    def clear_all(self) -> None:
        """Delete every backup and empty the undo stack."""
        if self.backup_root.exists():
            shutil.rmtree(self.backup_root)
        if self.history_file.exists():
            self.history_file.unlink()
        logger.info("Cleared all backups")

    def parse_backup_path(self, backup_path: Path) -> Optional[BackupEntry]:
        """Rebuild a BackupEntry from a backup file path.

        Returns:
            The entry, or None if the name does not follow
            ``<name>.<timestamp>.backup`` under the backup root
        """
        try:
            relative = backup_path.relative_to(self.backup_root)
        except ValueError:
            return None

        name = relative.name
        if not name.endswith(BACKUP_SUFFIX):
            return None

        original_name, _, timestamp = name[: -len(BACKUP_SUFFIX)].rpartition(".")
        if not original_name or not TIMESTAMP_RE.match(timestamp):
            return None

        return BackupEntry(
            original_path=self.project_root / relative.parent / original_name,
            backup_path=backup_path,
            timestamp=timestamp,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_timestamp(self) -> str:
        now = datetime.now()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now.strftime(TIMESTAMP_FORMAT)

    def _absolute(self, path: Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.project_root / path
        return path.resolve()

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self.project_root)
        except ValueError:
            raise BackupError(
                f"Cannot back up a file outside the project: {path}",
                details={"path": str(path)},
            ) from None

    def _load_stack(self) -> list[BackupEntry]:
        if not self.history_file.exists():
            return []

        try:
            data = json.loads(self.history_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable undo history {self.history_file}: {e}")
            return []

        stack = []
        for item in data if isinstance(data, list) else []:
            try:
                stack.append(BackupEntry(
                    original_path=self.project_root / item["original"],
                    backup_path=self.project_root / item["backup"],
                    timestamp=item["timestamp"],
                ))
            except (KeyError, TypeError):
                logger.warning(f"Skipping malformed undo entry: {item!r}")
        return stack

    def _save_stack(self, stack: list[BackupEntry]) -> None:
        data = [
            {
                "original": self._relative(e.original_path).as_posix(),
                "backup": self._relative(e.backup_path).as_posix(),
                "timestamp": e.timestamp,
            }
            for e in stack
        ]
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        self.history_file.write_text(json.dumps(data, indent=2), encoding="utf-8")
