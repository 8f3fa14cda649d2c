"""Tests for symbols, reference sets and outcomes."""

from __future__ import annotations

from pathlib import Path

import pytest

from rename_agent.errors import ErrorCode, InvalidSymbolError
from rename_agent.models import (
    CancelledResult,
    ExitCode,
    NoReferencesResult,
    NotSupportedResult,
    Reference,
    ReferenceSet,
    RollbackResult,
    ScanFailedResult,
    Symbol,
    SymbolKind,
    TransactionResult,
)


class TestSymbol:
    """Validation and description of rename requests."""

    @pytest.mark.parametrize(
        "kind, old, new",
        [
            (SymbolKind.CLASS, "Foo", "Baz"),
            (SymbolKind.METHOD, "get_user", "fetchUser"),
            (SymbolKind.VARIABLE, "$el", "element"),
            (SymbolKind.PACKAGE, "com.acme.old", "com.acme.shiny"),
        ],
    )
    def test_valid_symbols(self, kind: SymbolKind, old: str, new: str) -> None:
        symbol = Symbol(kind, old, new)
        assert symbol.is_rename

    @pytest.mark.parametrize(
        "kind, old, new",
        [
            (SymbolKind.CLASS, "Foo", ""),
            (SymbolKind.CLASS, "Foo", "Ba z"),
            (SymbolKind.CLASS, "1Foo", "Baz"),
            (SymbolKind.METHOD, "get-user", "fetchUser"),
            (SymbolKind.CLASS, "com.Foo", "Baz"),
            (SymbolKind.PACKAGE, "com..acme", "org.acme"),
            (SymbolKind.VARIABLE, "same", "same"),
        ],
    )
    def test_invalid_symbols(self, kind: SymbolKind, old: str, new: str) -> None:
        with pytest.raises(InvalidSymbolError) as exc_info:
            Symbol(kind, old, new)
        assert exc_info.value.code is ErrorCode.INVALID_SYMBOL

    def test_lookup_symbol(self) -> None:
        """A symbol without a new name is only good for finding references."""
        symbol = Symbol(SymbolKind.CLASS, "Foo")
        assert not symbol.is_rename

    def test_scope_rules(self) -> None:
        Symbol(SymbolKind.METHOD, "getUser", "fetchUser", scope="UserService")
        Symbol(SymbolKind.VARIABLE, "count", "total", scope="src/A.java")

        with pytest.raises(InvalidSymbolError, match="class scope"):
            Symbol(SymbolKind.METHOD, "getUser", "fetchUser", scope="src/UserService.java")
        with pytest.raises(InvalidSymbolError, match="does not take a scope"):
            Symbol(SymbolKind.CLASS, "Foo", "Baz", scope="Other")

    def test_label(self) -> None:
        assert Symbol(SymbolKind.CLASS, "Foo", "Baz").label == "class Foo"
        symbol = Symbol(SymbolKind.METHOD, "getUser", "fetchUser", scope="UserService")
        assert symbol.label == "method getUser in UserService"

    def test_immutable(self) -> None:
        symbol = Symbol(SymbolKind.CLASS, "Foo", "Baz")
        with pytest.raises(AttributeError):
            symbol.new_name = "Other"  # type: ignore[misc]


class TestReferenceSet:
    """Ordering and grouping of scan results."""

    def test_ordering_and_grouping(self) -> None:
        refs = ReferenceSet.from_references([
            Reference(Path("b/B.java"), 4, "x"),
            Reference(Path("a/A.java"), 9, "x"),
            Reference(Path("b/B.java"), 1, "x"),
            Reference(Path("a/A.java"), 2, "x"),
        ])

        assert [(r.file.as_posix(), r.line_number) for r in refs] == [
            ("a/A.java", 2), ("a/A.java", 9), ("b/B.java", 1), ("b/B.java", 4),
        ]
        assert refs.files == [Path("a/A.java"), Path("b/B.java")]
        assert refs.file_count == 2
        assert len(refs) == 4

    def test_empty(self) -> None:
        refs = ReferenceSet()
        assert not refs
        assert refs.files == []


class TestOutcomes:
    """Each outcome maps to its own exit code."""

    @pytest.mark.parametrize(
        "outcome, code",
        [
            (TransactionResult(), ExitCode.COMMITTED),
            (RollbackResult(), ExitCode.ROLLED_BACK),
            (NoReferencesResult(), ExitCode.NO_REFERENCES),
            (CancelledResult(), ExitCode.CANCELLED),
            (NotSupportedResult(), ExitCode.NOT_SUPPORTED),
            (ScanFailedResult(), ExitCode.SCAN_FAILED),
        ],
    )
    def test_exit_codes(self, outcome, code: ExitCode) -> None:
        assert outcome.exit_code is code
        assert outcome.success is (code is ExitCode.COMMITTED)

    def test_exit_codes_are_distinct(self) -> None:
        assert len({int(code) for code in ExitCode}) == len(ExitCode)

    def test_rollback_completeness(self) -> None:
        assert RollbackResult(restored=[Path("A.java")]).complete
        assert not RollbackResult(failed_restores=[Path("A.java")]).complete
