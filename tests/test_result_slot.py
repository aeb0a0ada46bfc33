"""Tests for the single-write result slot."""
from __future__ import annotations

import multiprocessing

import pytest

from arch_installer.engine import AlreadyInProgress, MissingSlot, ResultSlot


class TestResultSlot:
    def test_create_write_read(self):
        slot = ResultSlot()
        slot.create()
        slot.write(0)
        assert slot.read() == 0

    def test_read_before_write_is_missing(self):
        slot = ResultSlot()
        slot.create()
        with pytest.raises(MissingSlot):
            slot.read()

    def test_read_without_create_is_missing(self):
        with pytest.raises(MissingSlot):
            ResultSlot().read()

    def test_write_without_create_is_missing(self):
        with pytest.raises(MissingSlot):
            ResultSlot().write(3)

    def test_second_create_without_release_is_rejected(self):
        slot = ResultSlot()
        slot.create()
        with pytest.raises(AlreadyInProgress):
            slot.create()

    def test_release_allows_next_create(self):
        slot = ResultSlot()
        slot.create()
        slot.write(2)
        slot.release()
        assert not slot.exists
        slot.create()
        with pytest.raises(MissingSlot):
            slot.read()

    def test_forked_writer_is_visible_to_parent(self):
        slot = ResultSlot()
        slot.create()
        proc = multiprocessing.get_context("fork").Process(target=slot.write, args=(7,))
        proc.start()
        proc.join(10)
        assert proc.exitcode == 0
        assert slot.read() == 7
