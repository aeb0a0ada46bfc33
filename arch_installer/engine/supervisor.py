from __future__ import annotations

import enum
import logging
import threading
from typing import Optional

from .. import logging_utils
from ..console import InstallerConsole
from ..logging_utils import PROC
from .errors import AlreadyInProgress, MissingSlot
from .monitor import ProgressMonitor, WaitResult, interrupt_sets
from .result_slot import ResultSlot
from .task_runner import Payload, Step, spawn
from .workspace import Workspace

logger = logging.getLogger(__name__)


class StepOutcome(enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StepSupervisor:
    """Announce, run, monitor, and classify one step at a time.

    Steps never overlap: `run` only returns once its task has ended and its
    outcome has been classified.
    """

    def __init__(
        self,
        *,
        console: InstallerConsole,
        workspace: Workspace,
        monitor: Optional[ProgressMonitor] = None,
        slot: Optional[ResultSlot] = None,
    ) -> None:
        self.console = console
        self.workspace = workspace
        self.monitor = monitor or ProgressMonitor(console)
        self.slot = slot or ResultSlot()

    @property
    def cancel_token(self) -> threading.Event:
        return self.monitor.cancel_token

    def run(self, name: str, payload: Payload) -> StepOutcome:
        return self.run_step(Step(name=name, payload=payload))

    def run_step(self, step: Step) -> StepOutcome:
        if self.slot.exists:
            raise AlreadyInProgress(f"cannot start '{step.name}': previous step result was never released")

        logger.log(PROC, "%s...", step.name)

        self.slot.create()
        # Ctrl + c sets the token from before the fork until the wait is over
        with interrupt_sets(self.cancel_token):
            handle = spawn(
                step,
                self.slot,
                output_path=self.workspace.process_log,
                error_record=self.workspace.error_record,
            )
            try:
                result = self.monitor.wait(handle, step.name)
            except BaseException:
                handle.kill_tree()
                raise

        logging_utils.append_output(self.workspace.process_log)

        if result is WaitResult.CANCELLED:
            self.console.warn(f"Process with PID {handle.pid} was killed by user")
            return StepOutcome.CANCELLED

        errors = self.workspace.error_record
        try:
            code = self.slot.read()
        except MissingSlot as e:
            errors.write(f"'{step.name}' ended without an outcome: {e} (exit status {handle.join(0)})")
            self.console.fail(f"{step.name} failed")
            return StepOutcome.FAILED

        if code != 0:
            errors.write(f"'{step.name}' finished with outcome code {code}")
            self.console.fail(f"{step.name} failed")
            return StepOutcome.FAILED

        self.slot.release()
        self.console.proc(step.name, "success")
        return StepOutcome.SUCCESS
