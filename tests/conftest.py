"""
Shared pytest fixtures for the rename agent test suite.

This module provides:
- Temporary source trees (the Foo/Bar example and a multi-file tree)
- A scripted console that answers confirmations from a list
- A file manager whose raw writes fail on demand
- Controller factories isolated from the process-wide guard

Fixture Naming Convention:
- *_project : Fixtures that create a source tree under tmp_path
- make_* : Factories returning configured objects
"""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

import pytest
from rich.console import Console

from rename_agent.config import AgentConfig
from rename_agent.console.ui import RENAME_THEME, RenameConsole
from rename_agent.orchestrator import RefactorTransactionController, TransactionGuard
from rename_agent.pipeline.reporting import Preview
from rename_agent.utils.backups import BackupStore
from rename_agent.utils.file_ops import FileManager
from rename_agent.utils.logger import reset_logging


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture(autouse=True)
def _isolated_logging() -> Iterator[None]:
    """Drop loguru handlers added by a test (CLI runs add file sinks)."""
    yield
    reset_logging()


# =============================================================================
# Source trees
# =============================================================================

def write_tree(root: Path, files: dict[str, str]) -> dict[str, Path]:
    """Write files relative to root and return their paths by name."""
    paths = {}
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        paths[rel] = path
    return paths


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Bytes of every file under root, skipping the agent state directory."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and ".agentcli" not in p.relative_to(root).parts
    }


@pytest.fixture
def foo_bar_project(tmp_path: Path) -> Path:
    """
    The two-file example tree.

    Contains:
    - Foo.java: ``class Foo { Foo() {} }``
    - Bar.java: ``Foo f = new Foo();``
    """
    write_tree(tmp_path, {
        "Foo.java": "class Foo { Foo() {} }",
        "Bar.java": "Foo f = new Foo();",
    })
    return tmp_path


@pytest.fixture
def counter_project(tmp_path: Path) -> Path:
    """
    Five files that all use the variable ``counter``.

    Sorted order is A.java .. E.java, so the apply order is known.
    """
    write_tree(tmp_path, {
        f"src/{name}.java": f"class {name} {{\n    int counter = 0;\n    void tick() {{ counter++; }}\n}}\n"
        for name in ("A", "B", "C", "D", "E")
    })
    return tmp_path


# =============================================================================
# Console
# =============================================================================

class ScriptedConsole(RenameConsole):
    """RenameConsole that answers prompts from a list and records progress."""

    def __init__(self, answers: tuple[str, ...] = ()) -> None:
        super().__init__(
            Console(file=io.StringIO(), width=200, theme=RENAME_THEME, color_system=None),
            interactive=False,
        )
        self.answers = list(answers)
        self.questions: list[str] = []
        self.previews: list[Preview] = []
        self.events: list[tuple] = []

    def ask(self, message: str) -> str:
        self.questions.append(message)
        return self.answers.pop(0) if self.answers else ""

    def show_preview(self, preview: Preview) -> None:
        self.previews.append(preview)
        super().show_preview(preview)

    def show_file_applied(self, path: Path, count: int) -> None:
        self.events.append(("applied", path.as_posix(), count))
        super().show_file_applied(path, count)

    def show_file_renamed(self, old: Path, new: Path) -> None:
        self.events.append(("renamed", old.as_posix(), new.as_posix()))
        super().show_file_renamed(old, new)

    def show_file_restored(self, path: Path) -> None:
        self.events.append(("restored", path.as_posix()))
        super().show_file_restored(path)

    def show_restore_failed(self, path: Path, reason: str) -> None:
        self.events.append(("restore_failed", path.as_posix()))
        super().show_restore_failed(path, reason)

    @property
    def output(self) -> str:
        return self.console.file.getvalue()


@pytest.fixture
def scripted_console() -> Callable[..., ScriptedConsole]:
    """Factory: ``scripted_console("y")`` answers the first prompt with y."""
    def _make(*answers: str) -> ScriptedConsole:
        return ScriptedConsole(answers)
    return _make


# =============================================================================
# Fault injection
# =============================================================================

@dataclass
class FlakyFileManager(FileManager):
    """FileManager whose raw writes fail for chosen file names.

    The first write to a file is the apply write; later writes are restores.
    """

    fail_apply: set = field(default_factory=set)
    fail_restore: dict = field(default_factory=dict)
    writes: dict = field(default_factory=dict)

    def write_text(self, file_path: Path, content: str) -> None:
        name = Path(file_path).name
        count = self.writes.get(name, 0)
        self.writes[name] = count + 1

        if count == 0 and name in self.fail_apply:
            raise OSError(f"disk full while writing {name}")
        if count > 0 and self.fail_restore.get(name, 0) > 0:
            self.fail_restore[name] -= 1
            raise OSError(f"permission denied restoring {name}")

        super().write_text(file_path, content)


# =============================================================================
# Controllers
# =============================================================================

@pytest.fixture
def make_controller() -> Callable[..., RefactorTransactionController]:
    """Factory for a controller with its own guard and optional fault injection."""
    def _make(
        project: Path,
        console: Optional[RenameConsole] = None,
        *,
        config: Optional[AgentConfig] = None,
        auto_confirm: bool = False,
        fail_apply: tuple[str, ...] = (),
        fail_restore: Optional[dict[str, int]] = None,
        guard: Optional[TransactionGuard] = None,
    ) -> RefactorTransactionController:
        config = config or AgentConfig()
        store = BackupStore(project, max_backups_per_file=config.max_backups_per_file)
        manager = FlakyFileManager(
            project_path=project,
            backup_store=store,
            fail_apply=set(fail_apply),
            fail_restore=dict(fail_restore or {}),
        )
        return RefactorTransactionController(
            project_path=project,
            config=config,
            console=console or ScriptedConsole(),
            auto_confirm=auto_confirm,
            backup_store=store,
            file_manager=manager,
            guard=guard or TransactionGuard(),
        )
    return _make
