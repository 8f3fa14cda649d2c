"""Error types with typed error codes.

Error code ranges:
- 1xxx: Input (symbols, paths)
- 2xxx: Config
- 3xxx: Scan
- 4xxx: Apply / transaction
- 5xxx: Rollback / restore
- 6xxx: Backup store and single-file edits
"""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, Optional


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    INVALID_SYMBOL = 1001
    PATH_REJECTED = 1002

    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    SCAN_FAILED = 3001
    SCOPE_NOT_FOUND = 3002

    APPLY_FAILED = 4001
    FILE_RENAME_FAILED = 4002
    TRANSACTION_ACTIVE = 4003
    INVALID_TRANSITION = 4004

    RESTORE_FAILED = 5001
    ROLLBACK_INCOMPLETE = 5002

    BACKUP_FAILED = 6001
    EDIT_FAILED = 6002


class RenameAgentError(Exception):
    """Base error carrying a code and structured details."""

    code: ErrorCode = ErrorCode.APPLY_FAILED

    def __init__(
        self,
        message: str,
        *,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'SCAN_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for reports and scripting."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class InvalidSymbolError(RenameAgentError):
    """A rename request with unusable names or scope."""

    code = ErrorCode.INVALID_SYMBOL


class PathValidationError(RenameAgentError):
    """A path outside the project or pointing at a sensitive location."""

    code = ErrorCode.PATH_REJECTED

    @classmethod
    def outside_project(cls, path: Path, root: Path) -> PathValidationError:
        return cls(
            f"Access denied: {path} is outside the project directory {root}",
            details={"path": str(path), "root": str(root)},
        )

    @classmethod
    def sensitive(cls, path: Path, segment: str) -> PathValidationError:
        return cls(
            f"Access denied: cannot access sensitive path '{segment}'",
            details={"path": str(path), "segment": segment},
        )


class ConfigError(RenameAgentError):
    """Configuration-related errors."""

    code = ErrorCode.CONFIG_PARSE_ERROR

    @classmethod
    def parse_error(cls, path: Path, reason: str) -> ConfigError:
        return cls(
            f"Failed to parse config at {path}: {reason}",
            code=ErrorCode.CONFIG_PARSE_ERROR,
            details={"path": str(path), "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> ConfigError:
        return cls(
            f"Invalid value for '{field}': {reason}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
            details={"field": field, "value": str(value), "reason": reason},
        )


class ScanError(RenameAgentError):
    """A candidate file could not be read; nothing has been written."""

    code = ErrorCode.SCAN_FAILED

    @classmethod
    def unreadable(cls, path: Path, reason: str) -> ScanError:
        return cls(
            f"Cannot read {path}: {reason}",
            details={"path": str(path), "reason": reason},
        )

    @classmethod
    def scope_not_found(cls, scope: str) -> ScanError:
        return cls(
            f"Scope file not found: {scope}",
            code=ErrorCode.SCOPE_NOT_FOUND,
            details={"scope": scope},
        )


class ApplyError(RenameAgentError):
    """Writing a mutated file failed."""

    code = ErrorCode.APPLY_FAILED


class FileRenameError(RenameAgentError):
    """Renaming the defining file failed after all text mutations."""

    code = ErrorCode.FILE_RENAME_FAILED


class TransactionActiveError(RenameAgentError):
    """Another rename transaction is already running."""

    code = ErrorCode.TRANSACTION_ACTIVE


class InvalidTransitionError(RenameAgentError):
    """A transaction was moved to a state its current state cannot reach."""

    code = ErrorCode.INVALID_TRANSITION


class RestoreError(RenameAgentError):
    """A single file could not be restored during rollback."""

    code = ErrorCode.RESTORE_FAILED


class RollbackIncompleteError(RenameAgentError):
    """Rollback finished but some files could not be restored."""

    code = ErrorCode.ROLLBACK_INCOMPLETE

    def __init__(self, message: str, failed_paths: Iterable[Path]) -> None:
        failed = [Path(p) for p in failed_paths]
        super().__init__(message, details={"failed_paths": [str(p) for p in failed]})
        self.failed_paths = failed


class BackupError(RenameAgentError):
    """Creating or restoring a durable backup failed."""

    code = ErrorCode.BACKUP_FAILED


class EditError(RenameAgentError):
    """A single-file edit or write could not be performed."""

    code = ErrorCode.EDIT_FAILED
