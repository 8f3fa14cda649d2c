"""Pipeline modules for the rename workflow."""

from .scan import ReferenceScanner
from .apply import MutationApplier
from .transaction import RefactorTransaction, TransactionBuffer
from .reporting import Preview, build_preview

__all__ = [
    "ReferenceScanner",
    "MutationApplier",
    "RefactorTransaction",
    "TransactionBuffer",
    "Preview",
    "build_preview",
]
