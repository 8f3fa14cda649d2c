"""Transaction buffer and rename transaction state machine."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from ..errors import InvalidTransitionError
from ..models import BackupEntry, ReferenceSet, Symbol, TransactionState
from ..utils.logger import get_logger

logger = get_logger(__name__)

_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.SCANNING: frozenset({
        TransactionState.NO_REFERENCES,
        TransactionState.PREVIEW_READY,
        TransactionState.FAILED,
    }),
    TransactionState.PREVIEW_READY: frozenset({TransactionState.AWAITING_CONFIRMATION}),
    TransactionState.AWAITING_CONFIRMATION: frozenset({
        TransactionState.APPLYING,
        TransactionState.CANCELLED,
    }),
    TransactionState.APPLYING: frozenset({
        TransactionState.COMMITTED,
        TransactionState.FAILED,
    }),
    TransactionState.FAILED: frozenset({TransactionState.ROLLED_BACK}),
}

TERMINAL_STATES = frozenset({
    TransactionState.NO_REFERENCES,
    TransactionState.COMMITTED,
    TransactionState.ROLLED_BACK,
    TransactionState.CANCELLED,
    TransactionState.FAILED,
})


class TransactionBuffer:
    """Pre-mutation contents of every file touched by one apply pass.

    A path must be captured before its file is overwritten; from then on
    the original text is recoverable whatever happens to the file.
    """

    def __init__(self) -> None:
        self._originals: dict[Path, str] = {}
        self._snapshots: dict[Path, BackupEntry] = {}
        self._discarded = False

    def capture(self, path: Path, content: str) -> None:
        """Record a file's content. Re-capturing a path keeps the first copy."""
        if self._discarded:
            raise RuntimeError("Transaction buffer has been discarded")
        self._originals.setdefault(path, content)

    def attach_snapshot(self, path: Path, entry: BackupEntry) -> None:
        """Link a durable backup created for a captured path."""
        if path not in self._originals:
            raise KeyError(f"{path} has not been captured")
        self._snapshots.setdefault(path, entry)

    def original(self, path: Path) -> str:
        return self._originals[path]

    def snapshot(self, path: Path) -> Optional[BackupEntry]:
        return self._snapshots.get(path)

    @property
    def paths(self) -> list[Path]:
        """Captured paths in capture order."""
        return list(self._originals)

    @property
    def snapshots(self) -> list[BackupEntry]:
        return list(self._snapshots.values())

    @property
    def discarded(self) -> bool:
        return self._discarded

    def items(self) -> Iterator[tuple[Path, str]]:
        return iter(list(self._originals.items()))

    def discard(self) -> None:
        """Drop every captured content; the buffer cannot be reused."""
        self._originals.clear()
        self._snapshots.clear()
        self._discarded = True

    def __contains__(self, path: object) -> bool:
        return path in self._originals

    def __len__(self) -> int:
        return len(self._originals)


@dataclass
class RefactorTransaction:
    """One scan, preview, confirm, apply and commit-or-rollback cycle."""

    symbol: Symbol
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    reference_set: ReferenceSet = field(default_factory=ReferenceSet)
    state: TransactionState = TransactionState.SCANNING
    buffer: Optional[TransactionBuffer] = None

    def transition(self, new_state: TransactionState) -> None:
        """Move to a new state.

        Raises:
            InvalidTransitionError: The current state cannot reach new_state
        """
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise InvalidTransitionError(
                f"Transaction {self.id}: cannot go from {self.state.name} to {new_state.name}",
                details={"from": self.state.name, "to": new_state.name},
            )

        logger.debug(f"Transaction {self.id}: {self.state.name} -> {new_state.name}")
        self.state = new_state

    def begin_apply(self) -> TransactionBuffer:
        """Enter APPLYING with a fresh buffer."""
        self.transition(TransactionState.APPLYING)
        self.buffer = TransactionBuffer()
        return self.buffer

    def release_buffer(self) -> None:
        """Discard the buffer; it has no life beyond the transaction."""
        if self.buffer is not None:
            self.buffer.discard()
        self.buffer = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
