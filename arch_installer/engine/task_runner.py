from __future__ import annotations

import contextlib
import logging
import multiprocessing
import os
import signal
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

import psutil

from .. import logging_utils
from .result_slot import ResultSlot
from .workspace import ErrorRecord, describe_exception

logger = logging.getLogger(__name__)

Payload = Callable[[], Optional[int]]

_CTX = multiprocessing.get_context("fork")


@dataclass(frozen=True)
class Step:
    name: str
    payload: Payload


@dataclass
class TaskHandle:
    pid: int
    name: str
    _process: Any = field(repr=False)

    def is_alive(self) -> bool:
        return bool(self._process.is_alive())

    def join(self, timeout: Optional[float] = None) -> Optional[int]:
        self._process.join(timeout)
        return self._process.exitcode

    def kill_tree(self, *, timeout: float = 5.0) -> None:
        """SIGKILL the task and every process it spawned.

        Descendants are collected before anything is signalled: once the task
        dies its children are re-parented and can no longer be found from it.
        Payload commands that start their own session escape the process
        group, so both the group and the explicit snapshot are killed.
        """

        descendants: List[psutil.Process] = []
        with contextlib.suppress(psutil.NoSuchProcess):
            descendants = psutil.Process(self.pid).children(recursive=True)

        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(self.pid, signal.SIGKILL)

        for p in descendants:
            with contextlib.suppress(psutil.NoSuchProcess):
                p.kill()
        with contextlib.suppress(ProcessLookupError):
            os.kill(self.pid, signal.SIGKILL)

        # The task itself is reaped by multiprocessing, never by psutil.
        self._process.join(timeout)
        _, alive = psutil.wait_procs(descendants, timeout=timeout)
        for p in alive:
            logger.warning("Process %s survived SIGKILL", p.pid)


def _task_main(step: Step, slot: ResultSlot, output_path: str, error_record: ErrorRecord) -> None:
    os.setsid()
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    out = open(output_path, "w", encoding="utf-8", errors="replace", buffering=1)
    os.dup2(out.fileno(), 1)
    os.dup2(out.fileno(), 2)
    sys.stdout = out
    sys.stderr = out
    logging_utils.redirect_to_stream(out)

    code = 1
    try:
        try:
            result = step.payload()
        except SystemExit as e:
            # sys.exit() and sys.exit(None) mean success, any non-int code is a failure
            result = 0 if e.code is None else (e.code if isinstance(e.code, int) else 1)

        if result is None:
            logger.error("%s returned without an outcome code", step.name)
            code = 0
        else:
            code = int(result)
            slot.write(code)
    except BaseException as e:
        error_record.write(describe_exception(e, step=step.name))
        traceback.print_exc(file=out)
        code = 1
    finally:
        out.flush()

    os._exit(code)


def spawn(step: Step, slot: ResultSlot, *, output_path: str | Path, error_record: ErrorRecord) -> TaskHandle:
    """Start `step.payload` in its own process group and return immediately.

    The payload's outcome is only observable through `slot`; nothing it does
    is raised in the caller.
    """

    proc = _CTX.Process(
        target=_task_main,
        args=(step, slot, str(output_path), error_record),
        name=f"step:{step.name}",
        daemon=False,
    )
    proc.start()
    logger.debug("Spawned %s as pid %s", step.name, proc.pid)
    return TaskHandle(pid=int(proc.pid), name=step.name, _process=proc)
