"""End-to-end tests for the command line."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
from typer.testing import CliRunner

from conftest import snapshot_tree, write_tree
from rename_agent import __version__
from rename_agent.cli import app
from rename_agent.config import CONFIG_FILE

runner = CliRunner()


def invoke(project: Path, *args: str, input: Optional[str] = None):
    return runner.invoke(app, ["--project", str(project), *args], input=input)


class TestRenameCommands:
    """rename-* commands and their exit codes."""

    def test_rename_class_commits(self, foo_bar_project: Path) -> None:
        """The two-file example renames the class and its file."""
        result = invoke(foo_bar_project, "rename-class", "Foo", "Baz", "--yes")

        assert result.exit_code == 0, result.output
        assert "Refactoring complete" in result.output
        assert not (foo_bar_project / "Foo.java").exists()
        assert (foo_bar_project / "Baz.java").read_text() == "class Baz { Baz() {} }"
        assert (foo_bar_project / "Bar.java").read_text() == "Baz f = new Baz();"

    def test_confirmation_yes(self, foo_bar_project: Path) -> None:
        result = invoke(foo_bar_project, "rename-class", "Foo", "Baz", input="y\n")

        assert result.exit_code == 0, result.output
        assert "Apply refactoring? This will modify 2 files." in result.output
        assert (foo_bar_project / "Baz.java").exists()

    @pytest.mark.parametrize("answer", ["n\n", "\n", "maybe\n", ""])
    def test_anything_but_yes_cancels(self, foo_bar_project: Path, answer: str) -> None:
        """Declining, an empty line or end of input all leave the tree alone."""
        before = snapshot_tree(foo_bar_project)

        result = invoke(foo_bar_project, "rename-class", "Foo", "Baz", input=answer)

        assert result.exit_code == 4
        assert "cancelled" in result.output
        assert snapshot_tree(foo_bar_project) == before

    def test_no_references(self, foo_bar_project: Path) -> None:
        result = invoke(foo_bar_project, "rename-class", "Missing", "Other", "--yes")

        assert result.exit_code == 3
        assert "No references found" in result.output

    def test_package_rename_not_supported(self, foo_bar_project: Path) -> None:
        before = snapshot_tree(foo_bar_project)

        result = invoke(foo_bar_project, "rename-package", "com.old", "com.new", "--yes")

        assert result.exit_code == 5
        assert "not yet supported" in result.output
        assert snapshot_tree(foo_bar_project) == before

    def test_invalid_name(self, foo_bar_project: Path) -> None:
        result = invoke(foo_bar_project, "rename-class", "Foo", "1Baz", "--yes")

        assert result.exit_code == 2
        assert "Invalid new name" in result.output

    def test_rename_variable_in_one_file(self, counter_project: Path) -> None:
        result = invoke(
            counter_project, "rename-variable", "counter", "total", "--scope", "src/C.java", "--yes"
        )

        assert result.exit_code == 0, result.output
        assert "total" in (counter_project / "src" / "C.java").read_text()
        assert "counter" in (counter_project / "src" / "A.java").read_text()

    def test_rename_method(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {
            "UserService.java": "User getUser(int id) { return null; }",
            "Controller.java": "service.getUser(1);",
        })

        result = invoke(tmp_path, "rename-method", "getUser", "fetchUser", "--yes")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "Controller.java").read_text() == "service.fetchUser(1);"

    def test_scan_failure(self, counter_project: Path) -> None:
        result = invoke(
            counter_project, "rename-variable", "counter", "total", "--scope", "src/Nope.java", "--yes"
        )

        assert result.exit_code == 6
        assert "Scan failed" in result.output

    def test_missing_project(self, tmp_path: Path) -> None:
        result = invoke(tmp_path / "nope", "rename-class", "Foo", "Baz", "--yes")

        assert result.exit_code == 2
        assert "does not exist" in result.output

    def test_broken_config(self, foo_bar_project: Path) -> None:
        (foo_bar_project / CONFIG_FILE).write_text("restore_failure_policy: sometimes\n")

        result = invoke(foo_bar_project, "rename-class", "Foo", "Baz", "--yes")

        assert result.exit_code == 2
        assert "Configuration error" in result.output


class TestFind:
    """find never changes anything."""

    def test_find_class(self, foo_bar_project: Path) -> None:
        before = snapshot_tree(foo_bar_project)

        result = invoke(foo_bar_project, "find", "class", "Foo")

        assert result.exit_code == 0, result.output
        assert "Found 2 references in 2 files" in result.output
        assert snapshot_tree(foo_bar_project) == before

    def test_find_nothing(self, foo_bar_project: Path) -> None:
        assert invoke(foo_bar_project, "find", "class", "Missing").exit_code == 3

    def test_find_package(self, foo_bar_project: Path) -> None:
        assert invoke(foo_bar_project, "find", "package", "com.acme").exit_code == 5

    def test_find_with_missing_scope(self, counter_project: Path) -> None:
        result = invoke(counter_project, "find", "variable", "counter", "--scope", "src/Nope.java")
        assert result.exit_code == 6


class TestEditWriteUndo:
    """Single-file commands and undo."""

    def test_edit_then_undo(self, tmp_path: Path) -> None:
        """An edit is backed up and undo puts the old text back."""
        write_tree(tmp_path, {"A.java": "int x = 1;\n"})

        result = invoke(tmp_path, "edit", "A.java", "x = 1", "x = 2", "--yes")
        assert result.exit_code == 0, result.output
        assert (tmp_path / "A.java").read_text() == "int x = 2;\n"

        result = invoke(tmp_path, "undo")
        assert result.exit_code == 0, result.output
        assert "Restored A.java" in result.output
        assert (tmp_path / "A.java").read_text() == "int x = 1;\n"

    def test_edit_not_found(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"A.java": "int x = 1;"})
        assert invoke(tmp_path, "edit", "A.java", "nope", "yes", "--yes").exit_code == 3

    def test_edit_ambiguous(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"A.java": "a a"})

        assert invoke(tmp_path, "edit", "A.java", "a", "b", "--yes").exit_code == 2
        assert invoke(tmp_path, "edit", "A.java", "a", "b", "--all", "--yes").exit_code == 0
        assert (tmp_path / "A.java").read_text() == "b b"

    def test_edit_cancelled(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"A.java": "int x = 1;"})

        result = invoke(tmp_path, "edit", "A.java", "1", "2", input="n\n")

        assert result.exit_code == 4
        assert (tmp_path / "A.java").read_text() == "int x = 1;"

    def test_edit_outside_project(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        project.mkdir()
        (tmp_path / "secret.txt").write_text("x")

        assert invoke(project, "edit", "../secret.txt", "x", "y", "--yes").exit_code == 2

    def test_write_from_stdin(self, tmp_path: Path) -> None:
        result = invoke(tmp_path, "write", "src/New.java", "--yes", input="class New {}\n")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "src" / "New.java").read_text() == "class New {}\n"

    def test_write_from_file(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"A.java": "old", "incoming.txt": "new"})

        result = invoke(tmp_path, "write", "A.java", "--from-file", str(tmp_path / "incoming.txt"), "--yes")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "A.java").read_text() == "new"
        assert invoke(tmp_path, "undo").exit_code == 0
        assert (tmp_path / "A.java").read_text() == "old"

    def test_write_from_undecodable_file(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"A.java": "old"})
        (tmp_path / "incoming.bin").write_bytes(b"\xff\xfe\x00")

        result = invoke(tmp_path, "write", "A.java", "--from-file", str(tmp_path / "incoming.bin"), "--yes")

        assert result.exit_code == 2
        assert "UTF-8" in result.output
        assert (tmp_path / "A.java").read_text() == "old"

    def test_undo_with_nothing_to_undo(self, tmp_path: Path) -> None:
        result = invoke(tmp_path, "undo")

        assert result.exit_code == 3
        assert "Nothing to undo" in result.output

    def test_undo_copy_failure(self, tmp_path: Path, monkeypatch) -> None:
        write_tree(tmp_path, {"A.java": "one"})
        invoke(tmp_path, "edit", "A.java", "one", "two", "--yes")

        def refuse(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr("rename_agent.utils.backups.shutil.copy2", refuse)
        result = invoke(tmp_path, "undo")

        assert result.exit_code == 1
        assert "read-only" in result.output

    def test_undo_list_and_clear(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"A.java": "one"})
        assert invoke(tmp_path, "undo", "--list").exit_code == 0

        invoke(tmp_path, "edit", "A.java", "one", "two", "--yes")
        listing = invoke(tmp_path, "undo", "--list")
        assert "Backups" in listing.output

        assert invoke(tmp_path, "undo", "--clear", "--yes").exit_code == 0
        assert invoke(tmp_path, "undo").exit_code == 3


class TestMisc:
    """Version and configuration commands."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_show(self, tmp_path: Path) -> None:
        result = invoke(tmp_path, "config")

        assert result.exit_code == 0
        assert "max_backups_per_file" in result.output

    def test_config_init(self, tmp_path: Path) -> None:
        assert invoke(tmp_path, "config", "--init").exit_code == 0
        assert (tmp_path / CONFIG_FILE).exists()
        assert invoke(tmp_path, "config", "--init").exit_code == 2
