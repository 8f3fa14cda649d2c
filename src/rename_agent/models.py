"""Shared data models for the rename agent.

This module contains dataclasses and enums that are shared across the
pipeline, the orchestrator and the console to avoid circular imports.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import ClassVar, Iterator, Optional

from .errors import InvalidSymbolError

IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
PACKAGE_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")


class SymbolKind(Enum):
    """Kind of symbol targeted by a rename."""

    CLASS = "class"
    METHOD = "method"
    VARIABLE = "variable"
    PACKAGE = "package"


@dataclass(frozen=True)
class Symbol:
    """A rename request. Immutable for the duration of one transaction.

    ``scope`` is a class name for methods and a file path for variables.
    A symbol without ``new_name`` only looks references up.
    """

    kind: SymbolKind
    old_name: str
    new_name: Optional[str] = None
    scope: Optional[str] = None

    def __post_init__(self) -> None:
        names = [("old name", self.old_name)]
        if self.new_name is not None:
            names.append(("new name", self.new_name))

        for label, name in names:
            if not name or any(ch.isspace() for ch in name):
                raise InvalidSymbolError(
                    f"Invalid {label}: {name!r}",
                    details={"name": name},
                )
            pattern = PACKAGE_RE if self.kind is SymbolKind.PACKAGE else IDENTIFIER_RE
            if not pattern.match(name):
                raise InvalidSymbolError(
                    f"Invalid {label} for a {self.kind.value}: {name!r}",
                    details={"name": name, "kind": self.kind.value},
                )

        if self.old_name == self.new_name:
            raise InvalidSymbolError(
                f"Old and new names are identical: {self.old_name}",
                details={"name": self.old_name},
            )

        if self.scope is not None:
            if self.kind is SymbolKind.METHOD and not IDENTIFIER_RE.match(self.scope):
                raise InvalidSymbolError(
                    f"Invalid class scope: {self.scope!r}",
                    details={"scope": self.scope},
                )
            if self.kind in (SymbolKind.CLASS, SymbolKind.PACKAGE):
                raise InvalidSymbolError(
                    f"A {self.kind.value} rename does not take a scope",
                    details={"scope": self.scope},
                )

    @property
    def label(self) -> str:
        """Short human-readable description, e.g. ``method getUser in UserService``."""
        text = f"{self.kind.value} {self.old_name}"
        if self.scope:
            text += f" in {self.scope}"
        return text

    @property
    def is_rename(self) -> bool:
        return self.new_name is not None


@dataclass(frozen=True)
class Reference:
    """One matching line of a file. ``line_number`` is 1-based."""

    file: Path
    line_number: int
    line_text: str


@dataclass(frozen=True)
class ReferenceSet:
    """References grouped by file in lexicographic path order.

    Within a file references are in ascending line order, so preview output
    and apply order are reproducible across runs.
    """

    references: tuple[Reference, ...] = ()

    @classmethod
    def from_references(cls, references: list[Reference]) -> ReferenceSet:
        ordered = sorted(references, key=lambda r: (str(r.file), r.line_number))
        return cls(tuple(ordered))

    @property
    def files(self) -> list[Path]:
        """Distinct files, in order."""
        return list(self.by_file())

    @property
    def file_count(self) -> int:
        return len(self.by_file())

    def by_file(self) -> dict[Path, list[Reference]]:
        grouped: dict[Path, list[Reference]] = {}
        for ref in self.references:
            grouped.setdefault(ref.file, []).append(ref)
        return grouped

    def __len__(self) -> int:
        return len(self.references)

    def __iter__(self) -> Iterator[Reference]:
        return iter(self.references)

    def __bool__(self) -> bool:
        return len(self.references) > 0


@dataclass(frozen=True)
class BackupEntry:
    """A durable copy of a file made before it was overwritten."""

    original_path: Path
    backup_path: Path
    timestamp: str

    def __str__(self) -> str:
        return f"{self.original_path.name} -> {self.backup_path.name} ({self.timestamp})"


class TransactionState(Enum):
    """Lifecycle of a rename transaction."""

    SCANNING = "scanning"
    NO_REFERENCES = "no_references"
    PREVIEW_READY = "preview_ready"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ExitCode(IntEnum):
    """Process exit codes, one per distinguishable outcome."""

    COMMITTED = 0
    ROLLED_BACK = 1
    USAGE = 2
    NO_REFERENCES = 3
    CANCELLED = 4
    NOT_SUPPORTED = 5
    SCAN_FAILED = 6
    ROLLBACK_INCOMPLETE = 7


# =============================================================================
# Transaction outcomes
# =============================================================================


class Outcome:
    """Base for the distinct results a rename command can end with."""

    state: ClassVar[Optional[TransactionState]] = None
    exit_code: ClassVar[ExitCode] = ExitCode.COMMITTED

    @property
    def success(self) -> bool:
        return self.exit_code is ExitCode.COMMITTED


@dataclass
class TransactionResult(Outcome):
    """All files were rewritten and the transaction committed."""

    state: ClassVar[Optional[TransactionState]] = TransactionState.COMMITTED
    exit_code: ClassVar[ExitCode] = ExitCode.COMMITTED

    files_modified: int = 0
    references_replaced: int = 0
    renamed_file: Optional[tuple[Path, Path]] = None
    modified_paths: list[Path] = field(default_factory=list)


@dataclass
class NoReferencesResult(Outcome):
    """The scan found nothing to rename."""

    state: ClassVar[Optional[TransactionState]] = TransactionState.NO_REFERENCES
    exit_code: ClassVar[ExitCode] = ExitCode.NO_REFERENCES

    symbol: Optional[Symbol] = None


@dataclass
class CancelledResult(Outcome):
    """The user declined at the confirmation prompt; no file was touched."""

    state: ClassVar[Optional[TransactionState]] = TransactionState.CANCELLED
    exit_code: ClassVar[ExitCode] = ExitCode.CANCELLED

    files_planned: int = 0


@dataclass
class RollbackResult(Outcome):
    """Applying failed and the buffered files were restored."""

    state: ClassVar[Optional[TransactionState]] = TransactionState.ROLLED_BACK
    exit_code: ClassVar[ExitCode] = ExitCode.ROLLED_BACK

    error: str = ""
    restored: list[Path] = field(default_factory=list)
    failed_restores: list[Path] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when every buffered file was restored, i.e. no net change."""
        return not self.failed_restores


@dataclass
class NotSupportedResult(Outcome):
    """The command shape is accepted but not implemented (package rename)."""

    exit_code: ClassVar[ExitCode] = ExitCode.NOT_SUPPORTED

    message: str = "Package refactoring is not yet supported"


@dataclass
class ScanFailedResult(Outcome):
    """Scanning aborted before anything was written."""

    state: ClassVar[Optional[TransactionState]] = TransactionState.FAILED
    exit_code: ClassVar[ExitCode] = ExitCode.SCAN_FAILED

    error: str = ""


# =============================================================================
# Single-file operations
# =============================================================================


@dataclass
class EditResult:
    """Result of a single-file string replacement."""

    path: Path
    success: bool
    message: str
    replacements: int = 0
    backup: Optional[BackupEntry] = None


@dataclass
class WriteResult:
    """Result of a single-file write."""

    path: Path
    success: bool
    message: str
    created: bool = False
    backup: Optional[BackupEntry] = None
