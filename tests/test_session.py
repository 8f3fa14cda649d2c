"""Tests for the interactive shell and its completer."""

from __future__ import annotations

from pathlib import Path

from prompt_toolkit.completion import CompleteEvent
from prompt_toolkit.document import Document

from conftest import ScriptedConsole, write_tree
from rename_agent.cli import app
from rename_agent.console.autocomplete import ShellCompleter
from rename_agent.console.session import RenameShell


def _shell(project: Path, console: ScriptedConsole) -> RenameShell:
    # A session object is passed so no prompt_toolkit terminal is created
    return RenameShell(
        app,
        project,
        ui=console,
        global_args=["--project", str(project)],
        session=object(),
    )


class TestRenameShell:
    """Line handling and dispatch."""

    def test_exit_commands_stop(self, tmp_path: Path, scripted_console) -> None:
        shell = _shell(tmp_path, scripted_console())

        assert shell.handle_line("exit") is False
        assert shell.handle_line("QUIT") is False

    def test_blank_and_help(self, tmp_path: Path, scripted_console) -> None:
        console = scripted_console()
        shell = _shell(tmp_path, console)

        assert shell.handle_line("   ") is True
        assert shell.handle_line("help") is True
        assert "rename-class" in console.output

    def test_unbalanced_quotes(self, tmp_path: Path, scripted_console) -> None:
        console = scripted_console()
        shell = _shell(tmp_path, console)

        assert shell.handle_line('edit A.java "x') is True
        assert "Cannot parse command" in console.output

    def test_dispatch_runs_commands(self, foo_bar_project: Path, scripted_console) -> None:
        """Commands typed in the shell behave like the command line."""
        shell = _shell(foo_bar_project, scripted_console())

        assert shell.dispatch(["rename-class", "Foo", "Baz", "--yes"]) == 0
        assert (foo_bar_project / "Baz.java").exists()
        assert shell.dispatch(["rename-class", "Foo", "Baz", "--yes"]) == 3

    def test_dispatch_usage_error(self, tmp_path: Path, scripted_console) -> None:
        """An unknown command reports a usage error and the shell carries on."""
        shell = _shell(tmp_path, scripted_console())

        assert shell.dispatch(["no-such-command"]) == 2
        assert shell.handle_line("no-such-command") is True

    def test_unreadable_input_file_keeps_the_shell_running(self, tmp_path: Path, scripted_console) -> None:
        write_tree(tmp_path, {"A.java": "old"})
        (tmp_path / "incoming.bin").write_bytes(b"\xff\xfe\x00")
        shell = _shell(tmp_path, scripted_console())

        assert shell.handle_line(f"write A.java --from-file {tmp_path / 'incoming.bin'} --yes") is True
        assert shell.dispatch(["write", "A.java", "--from-file", str(tmp_path / "incoming.bin"), "--yes"]) == 2
        assert (tmp_path / "A.java").read_text() == "old"

    def test_unexpected_error_is_reported(self, tmp_path: Path, scripted_console, monkeypatch) -> None:
        """A command that crashes reports the error and the shell carries on."""
        console = scripted_console()
        shell = _shell(tmp_path, console)
        write_tree(tmp_path, {"A.java": "x = 1"})

        def explode(state):
            raise RuntimeError("disk vanished")

        monkeypatch.setattr("rename_agent.cli._file_manager", explode)

        assert shell.dispatch(["edit", "A.java", "x = 1", "x = 2", "--yes"]) == 1
        assert "disk vanished" in console.output
        assert shell.handle_line("edit A.java 'x = 1' 'x = 2' --yes") is True

    def test_dispatch_does_not_reopen_the_shell(self, tmp_path: Path, scripted_console) -> None:
        """A bare line of global options returns instead of nesting a shell."""
        shell = _shell(tmp_path, scripted_console())
        assert shell.dispatch([]) == 0


class TestShellCompleter:
    """Command and file completion."""

    def _complete(self, completer: ShellCompleter, text: str) -> list[str]:
        document = Document(text, len(text))
        return [c.text for c in completer.get_completions(document, CompleteEvent())]

    def test_completes_commands(self, tmp_path: Path) -> None:
        completer = ShellCompleter(tmp_path, ["rename-class", "rename-method", "undo"])
        assert self._complete(completer, "rena") == ["rename-class", "rename-method"]

    def test_completes_project_files(self, tmp_path: Path) -> None:
        write_tree(tmp_path, {"src/UserService.java": "", "target/UserService.class": ""})
        completer = ShellCompleter(tmp_path, ["edit"])

        suggestions = self._complete(completer, "edit UserSer")

        assert "src/UserService.java" in suggestions
        assert not any(s.startswith("target/") for s in suggestions)
