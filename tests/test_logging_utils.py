"""Tests for the durable installer log."""
from __future__ import annotations

import io
import logging

from arch_installer import logging_utils
from arch_installer.logging_utils import (
    HEAD,
    PROC,
    PROP,
    append_output,
    configure_logging,
    current_log_path,
    redirect_to_stream,
    shutdown_logging,
)

from .helpers import categories


class TestConfigureLogging:
    def test_format_and_categories(self, log_path):
        log = logging.getLogger("arch_installer.test")
        log.log(HEAD, "Installation")
        log.log(PROC, "Prepare Disk...")
        log.log(PROP, "hostname archbox")
        log.info("plain")
        log.warning("careful")
        log.error("broken")

        assert categories(log_path) == [
            ("HEAD", "Installation"),
            ("PROC", "Prepare Disk..."),
            ("PROP", "hostname archbox"),
            ("INFO", "plain"),
            ("WARN", "careful"),
            ("FAIL", "broken"),
        ]
        first = log_path.read_text(encoding="utf-8").splitlines()[0]
        assert " | arch-linux | HEAD | " in first

    def test_existing_log_rotates_to_old(self, tmp_path):
        path = tmp_path / "installer.log"
        path.write_text("previous run\n", encoding="utf-8")
        try:
            assert configure_logging(str(path)) == str(path)
            assert (tmp_path / "installer.log.old").read_text(encoding="utf-8") == "previous run\n"
            assert current_log_path() == str(path)
        finally:
            shutdown_logging()
        assert current_log_path() is None

    def test_unwritable_location_falls_back_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        try:
            actual = configure_logging(str(blocker / "sub" / "installer.log"))
        finally:
            shutdown_logging()
        assert actual == str(tmp_path / "installer.log")


class TestOutputHandling:
    def test_append_output_is_verbatim(self, log_path, tmp_path):
        buffer = tmp_path / "process.log"
        buffer.write_text("raw line one\nraw line two", encoding="utf-8")
        append_output(buffer)
        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert lines[-2:] == ["raw line one", "raw line two"]

    def test_append_missing_buffer_is_noop(self, log_path, tmp_path):
        append_output(tmp_path / "absent.log")
        assert log_path.read_text(encoding="utf-8") == ""

    def test_redirect_to_stream(self, log_path):
        stream = io.StringIO()
        redirect_to_stream(stream)
        logging.getLogger("arch_installer.child").info("inside task")
        assert "| INFO | inside task" in stream.getvalue()
        assert "inside task" not in log_path.read_text(encoding="utf-8")
        assert logging_utils.current_log_path() == str(log_path)
