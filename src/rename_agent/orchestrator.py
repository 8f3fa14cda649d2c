"""Refactor transaction controller.

Coordinates one rename from start to finish:
1. Reference scanning
2. Preview rendering
3. Confirmation
4. Apply, file by file, capturing originals in the transaction buffer
5. Commit, or roll back every captured file on the first failure

Only one transaction runs at a time per process; the guard makes that
explicit instead of relying on the single-threaded command loop.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from .config import AgentConfig, RestorePolicy
from .console.ui import RenameConsole
from .errors import (
    ApplyError,
    InvalidSymbolError,
    RenameAgentError,
    RestoreError,
    RollbackIncompleteError,
    ScanError,
    TransactionActiveError,
)
from .models import (
    BackupEntry,
    CancelledResult,
    NoReferencesResult,
    NotSupportedResult,
    Outcome,
    ReferenceSet,
    RollbackResult,
    ScanFailedResult,
    Symbol,
    SymbolKind,
    TransactionResult,
    TransactionState,
)
from .pipeline import MutationApplier, Preview, RefactorTransaction, ReferenceScanner, build_preview
from .utils.backups import BackupStore
from .utils.file_ops import FileManager
from .utils.logger import get_logger

logger = get_logger(__name__)


class TransactionGuard:
    """Non-blocking mutual exclusion around the active transaction."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.owner: Optional[str] = None

    @contextmanager
    def hold(self, owner: str) -> Iterator[None]:
        """Mark a transaction active for the duration of the block.

        Raises:
            TransactionActiveError: Another transaction holds the guard
        """
        if not self._lock.acquire(blocking=False):
            raise TransactionActiveError(
                f"Another rename transaction ({self.owner}) is already in progress",
                details={"active": self.owner, "requested": owner},
            )
        self.owner = owner
        try:
            yield
        finally:
            self.owner = None
            self._lock.release()

    @property
    def active(self) -> bool:
        return self._lock.locked()


# Shared by every controller in the process
ACTIVE_TRANSACTION_GUARD = TransactionGuard()


@dataclass
class RefactorTransactionController:
    """Runs rename transactions against one project tree."""

    project_path: Path
    config: AgentConfig = field(default_factory=AgentConfig)
    console: Optional[RenameConsole] = None
    auto_confirm: bool = False
    backup_store: Optional[BackupStore] = None
    file_manager: Optional[FileManager] = None
    guard: TransactionGuard = field(default_factory=lambda: ACTIVE_TRANSACTION_GUARD)

    def __post_init__(self) -> None:
        """Initialize components."""
        self.project_path = Path(self.project_path).resolve()

        if self.console is None:
            self.console = RenameConsole()
        if self.backup_store is None:
            self.backup_store = BackupStore(
                self.project_path,
                max_backups_per_file=self.config.max_backups_per_file,
            )
        if self.file_manager is None:
            self.file_manager = FileManager(
                project_path=self.project_path,
                backup_store=self.backup_store,
                max_file_size_mb=self.config.max_file_size_mb,
            )

        self.scanner = ReferenceScanner(self.config)
        self.applier = MutationApplier()
        self.active: Optional[RefactorTransaction] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, symbol: Symbol) -> Outcome:
        """Run a full rename transaction.

        Args:
            symbol: What to rename

        Returns:
            One of TransactionResult, NoReferencesResult, CancelledResult,
            RollbackResult, NotSupportedResult or ScanFailedResult

        Raises:
            TransactionActiveError: Another transaction is running
            InvalidSymbolError: The symbol has no new name
            RollbackIncompleteError: Rollback left files unrestored and the
                restore policy is ``escalate``
        """
        if not symbol.is_rename:
            raise InvalidSymbolError(f"No new name given for {symbol.label}")

        if symbol.kind is SymbolKind.PACKAGE:
            logger.info(f"Package rename requested ({symbol.old_name} -> {symbol.new_name}); not supported")
            return NotSupportedResult()

        transaction = RefactorTransaction(symbol=symbol)
        with self.guard.hold(transaction.id):
            self.active = transaction
            logger.info(f"Transaction {transaction.id} started: {symbol.label} -> {symbol.new_name}")
            try:
                outcome = self._run(transaction)
            finally:
                self.active = None

        logger.info(f"Transaction {transaction.id} ended in {transaction.state.name}")
        return outcome

    def preview(self, symbol: Symbol) -> tuple[ReferenceSet, Preview]:
        """Scan and build the preview without starting a transaction.

        Raises:
            ScanError: A candidate file cannot be read
        """
        reference_set = self.scanner.scan(self.project_path, symbol)
        return reference_set, self._build_preview(reference_set, symbol)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(self, transaction: RefactorTransaction) -> Outcome:
        symbol = transaction.symbol
        self.console.show_scanning(symbol)

        try:
            reference_set = self.scanner.scan(self.project_path, symbol)
        except ScanError as e:
            logger.error(f"Scan failed: {e.to_dict()}")
            transaction.transition(TransactionState.FAILED)
            return ScanFailedResult(error=str(e))

        transaction.reference_set = reference_set
        if not reference_set:
            transaction.transition(TransactionState.NO_REFERENCES)
            return NoReferencesResult(symbol=symbol)

        transaction.transition(TransactionState.PREVIEW_READY)
        self.console.show_preview(self._build_preview(reference_set, symbol))

        transaction.transition(TransactionState.AWAITING_CONFIRMATION)
        file_count = reference_set.file_count
        if not self.auto_confirm:
            question = f"Apply refactoring? This will modify {file_count} file{'s' if file_count != 1 else ''}."
            if not self.console.confirm(question):
                transaction.transition(TransactionState.CANCELLED)
                return CancelledResult(files_planned=file_count)

        return self._apply(transaction)

    def _apply(self, transaction: RefactorTransaction) -> Outcome:
        symbol = transaction.symbol
        reference_set = transaction.reference_set
        buffer = transaction.begin_apply()
        defining_file = self.applier.defining_file(reference_set, symbol)

        self.console.show_applying()

        files_modified = 0
        references_replaced = 0
        modified_paths: list[Path] = []
        renamed_file: Optional[tuple[Path, Path]] = None
        current: Optional[Path] = None

        try:
            for path, references in reference_set.by_file().items():
                current = path
                original = self.file_manager.read_text(path)
                buffer.capture(path, original)
                if self.config.durable_snapshots:
                    buffer.attach_snapshot(path, self.backup_store.backup(path, prune=False))

                new_content = self.applier.apply(original, symbol)
                if new_content == original:
                    continue

                self.file_manager.write_text(path, new_content)
                files_modified += 1
                references_replaced += len(references)
                modified_paths.append(path)
                self.console.show_file_applied(self._relative(path), len(references))

            if defining_file is not None:
                current = defining_file
                new_path = self.applier.rename_file(defining_file, symbol)
                renamed_file = (defining_file, new_path)
                self.console.show_file_renamed(self._relative(defining_file), self._relative(new_path))

        except BaseException as e:
            error = self._describe_failure(e, current)
            record = e.to_dict() if isinstance(e, RenameAgentError) else {"error": type(e).__name__, "message": error}
            logger.error(f"Transaction {transaction.id} failed: {record}")
            transaction.transition(TransactionState.FAILED)
            result = self._rollback(transaction, error, renamed_file)
            if not isinstance(e, Exception):
                raise
            return result

        transaction.transition(TransactionState.COMMITTED)
        for entry in buffer.snapshots:
            self.backup_store.prune(entry.original_path)
        transaction.release_buffer()
        logger.info(
            f"Transaction {transaction.id} committed: {files_modified} files, "
            f"{references_replaced} references"
        )
        return TransactionResult(
            files_modified=files_modified,
            references_replaced=references_replaced,
            renamed_file=renamed_file,
            modified_paths=modified_paths,
        )

    # ------------------------------------------------------------------
    # Rollback
    # ------------------------------------------------------------------

    def _rollback(
        self,
        transaction: RefactorTransaction,
        error: str,
        renamed_file: Optional[tuple[Path, Path]] = None,
    ) -> RollbackResult:
        buffer = transaction.buffer
        self.console.show_rollback_started(error)

        restored: list[Path] = []
        failed: list[Path] = []

        # The defining file must be back at its old path before its text is restored
        if renamed_file is not None:
            old_path, new_path = renamed_file
            try:
                self._undo_file_rename(old_path, new_path)
            except RestoreError as e:
                logger.error(f"Could not move {new_path} back to {old_path}: {e}")
                failed.append(new_path)
                self.console.show_restore_failed(self._relative(new_path), str(e))

        for path, content in buffer.items():
            ok, reason = self._restore_file(path, content, buffer.snapshot(path))
            if ok:
                restored.append(path)
                self.console.show_file_restored(self._relative(path))
            else:
                failed.append(path)
                self.console.show_restore_failed(self._relative(path), reason)

        for entry in buffer.snapshots:
            self.backup_store.discard(entry)

        transaction.transition(TransactionState.ROLLED_BACK)
        transaction.release_buffer()

        if failed:
            logger.error(f"Rollback of {transaction.id} incomplete: {len(failed)} files not restored")
        else:
            logger.info(f"Rollback of {transaction.id} complete: {len(restored)} files restored")

        if failed and self.config.restore_failure_policy is RestorePolicy.ESCALATE:
            raise RollbackIncompleteError(
                f"Rollback incomplete after: {error}. "
                f"Not restored: {', '.join(str(self._relative(p)) for p in failed)}",
                failed,
            )

        return RollbackResult(error=error, restored=restored, failed_restores=failed)

    def _undo_file_rename(self, old_path: Path, new_path: Path) -> None:
        """Move a renamed file back to its old path.

        Raises:
            RestoreError: The old path is taken or the rename failed
        """
        if old_path.exists():
            raise RestoreError(
                f"Cannot move {self._relative(new_path)} back: {self._relative(old_path)} already exists",
                details={"path": str(new_path)},
            )
        try:
            new_path.rename(old_path)
        except OSError as e:
            raise RestoreError(str(e), details={"path": str(new_path)}) from e
        logger.info(f"Moved {new_path} back to {old_path}")

    def _restore_file(
        self,
        path: Path,
        content: str,
        snapshot: Optional[BackupEntry],
    ) -> tuple[bool, str]:
        attempts = 1
        if self.config.restore_failure_policy is RestorePolicy.RETRY:
            attempts += self.config.restore_retries

        reason = ""
        for attempt in range(1, attempts + 1):
            try:
                self._restore_once(path, content, snapshot)
                return True, ""
            except RestoreError as e:
                reason = str(e)
                logger.warning(f"Restore of {path} failed (attempt {attempt}/{attempts}): {e}")

        return False, reason

    def _restore_once(self, path: Path, content: str, snapshot: Optional[BackupEntry]) -> None:
        """Put one file back, preferring its durable snapshot.

        Raises:
            RestoreError: Neither the snapshot nor the buffered content could be written
        """
        try:
            if snapshot is not None and self.backup_store.restore(snapshot):
                return
            self.file_manager.write_text(path, content)
        except Exception as e:
            raise RestoreError(str(e), details={"path": str(path)}) from e
        logger.info(f"Restored {path}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_preview(self, reference_set: ReferenceSet, symbol: Symbol) -> Preview:
        defining_file = self.applier.defining_file(reference_set, symbol) if symbol.is_rename else None
        file_rename = None
        if defining_file is not None:
            file_rename = (defining_file, self.applier.renamed_path(defining_file, symbol))

        return build_preview(
            reference_set,
            symbol,
            self.project_path,
            sample_lines=self.config.preview_sample_lines,
            file_rename=file_rename,
        )

    def _describe_failure(self, error: BaseException, path: Optional[Path]) -> str:
        if isinstance(error, RenameAgentError):
            return str(error)
        if isinstance(error, KeyboardInterrupt):
            return "Interrupted by user"
        where = f" {self._relative(path)}" if path is not None else ""
        return str(ApplyError(f"Failed to update{where}: {error}"))

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self.project_path)
        except ValueError:
            return path
