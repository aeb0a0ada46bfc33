from __future__ import annotations

import logging
import multiprocessing
from typing import Any, Optional

from .errors import AlreadyInProgress, MissingSlot

logger = logging.getLogger(__name__)

# Outcome codes are process exit codes (0..255), so -1 can never be written.
IN_PROGRESS = -1


class ResultSlot:
    """Single-write/single-read handoff of one step's outcome code.

    The slot lives in shared memory so a forked task can write it and the
    supervising process can read it after the task terminated.
    """

    def __init__(self, ctx: Optional[Any] = None) -> None:
        self._ctx = ctx or multiprocessing.get_context("fork")
        self._cell: Optional[Any] = None

    @property
    def exists(self) -> bool:
        return self._cell is not None

    def create(self) -> None:
        if self._cell is not None:
            raise AlreadyInProgress("result slot already exists (previous step never released it)")
        self._cell = self._ctx.Value("i", IN_PROGRESS, lock=False)

    def write(self, code: int) -> None:
        if self._cell is None:
            raise MissingSlot("result slot was not created")
        self._cell.value = int(code)

    def read(self) -> int:
        if self._cell is None:
            raise MissingSlot("result slot was not created")
        code = int(self._cell.value)
        if code == IN_PROGRESS:
            raise MissingSlot("result slot was never written")
        return code

    def release(self) -> None:
        self._cell = None
