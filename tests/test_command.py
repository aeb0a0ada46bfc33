"""Tests for the command runner and error descriptions."""
from __future__ import annotations

import logging

import pytest

from arch_installer.engine.workspace import ErrorRecord, Workspace, describe_exception
from arch_installer.lib.command import CommandError, fmt_argv, run_cmd
from arch_installer.logging_utils import configure_logging, shutdown_logging

from .helpers import categories


class TestRunCmd:
    def test_capture(self, log_path):
        r = run_cmd(["sh", "-c", "echo out; echo err >&2"], capture=True)
        assert r.returncode == 0
        assert r.stdout == "out\n"
        assert r.stderr == "err\n"
        assert ("INFO", "CMD sh -c 'echo out; echo err >&2'") in categories(log_path)

    def test_failure_raises_with_command(self):
        with pytest.raises(CommandError) as info:
            run_cmd(["sh", "-c", "exit 3"])
        assert info.value.returncode == 3
        assert info.value.command == "sh -c 'exit 3'"

    def test_unchecked_failure_returns_code(self):
        r = run_cmd(["false"], check=False)
        assert r.returncode == 1
        assert not r.ok

    def test_dry_run_does_not_execute(self, tmp_path):
        marker = tmp_path / "marker"
        r = run_cmd(["touch", str(marker)], dry_run=True)
        assert r.returncode == 0
        assert not marker.exists()

    def test_secret_input_is_not_logged(self, tmp_path):
        path = tmp_path / "debug.log"
        configure_logging(str(path), level=logging.DEBUG)
        try:
            run_cmd(["sh", "-c", "cat >/dev/null"], input_text="root:hunter2\n", secret_input=True)
            run_cmd(["sh", "-c", "cat >/dev/null"], input_text="visible\n")
        finally:
            shutdown_logging()
        text = path.read_text(encoding="utf-8")
        assert "hunter2" not in text
        assert "STDIN visible" in text

    def test_fmt_argv_quotes(self):
        assert fmt_argv(["echo", "a b"]) == "echo 'a b'"


class TestDescribeException:
    def test_command_error_names_caller(self):
        def enable_multilib():
            run_cmd(["sh", "-c", "exit 2"])

        with pytest.raises(CommandError) as info:
            enable_multilib()
        text = describe_exception(info.value, step="Enable Multilib")
        assert text.startswith("Command 'sh -c 'exit 2'' failed with exit code 2 in function 'enable_multilib'")
        assert text.endswith(" during 'Enable Multilib'")

    def test_plain_exception(self):
        try:
            raise ValueError("bad value")
        except ValueError as e:
            text = describe_exception(e)
        assert text.startswith("ValueError: bad value in function 'test_plain_exception' (line ")


class TestErrorRecord:
    def test_first_writer_wins(self, tmp_path):
        record = ErrorRecord(tmp_path / "installer.err")
        assert record.write("first") is True
        assert record.write("second") is False
        assert record.consume() == "first"
        assert record.consume() is None
        assert not record.exists()

    def test_workspace_lifecycle(self, tmp_path):
        ws = Workspace.create(tmp_path)
        assert ws.root.name.startswith(".tmp.")
        ws.process_log.write_text("x", encoding="utf-8")
        ws.cleanup()
        assert not ws.root.exists()
        ws.cleanup()
