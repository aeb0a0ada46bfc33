from __future__ import annotations

import enum
import logging
from types import TracebackType
from typing import Callable, Optional, Type

from .. import logging_utils
from ..console import InstallerConsole
from .errors import EXIT_CANCELLED, EXIT_FAILURE, EXIT_SUCCESS, InvalidTransition
from .supervisor import StepOutcome
from .workspace import Workspace, describe_exception

logger = logging.getLogger(__name__)


class RunState(enum.Enum):
    RUNNING = "running"
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


_STATE_BY_OUTCOME = {
    StepOutcome.SUCCESS: RunState.SUCCESS,
    StepOutcome.CANCELLED: RunState.CANCELLED,
    StepOutcome.FAILED: RunState.FAILED,
}

_EXIT_CODES = {
    RunState.SUCCESS: EXIT_SUCCESS,
    RunState.CANCELLED: EXIT_CANCELLED,
    RunState.FAILED: EXIT_FAILURE,
}


class ErrorTrap:
    """Single exit path for the whole run.

    Wrap the orchestration in `with trap:`. The orchestrator reports its
    result through `resolve`; anything that escapes the block (an operator
    interrupt or an unexpected fault) is classified here. Leaving the block
    releases transient resources and reports exactly once; `exit_code` then
    holds the process exit status.
    """

    def __init__(
        self,
        *,
        console: InstallerConsole,
        workspace: Workspace,
        log_path: Optional[str] = None,
        interactive: bool = True,
        forget_secrets: Optional[Callable[[], None]] = None,
    ) -> None:
        self.console = console
        self.workspace = workspace
        # defaults to wherever logging actually landed, which may be the cwd fallback
        self.log_path = log_path or logging_utils.current_log_path() or logging_utils.DEFAULT_LOG_PATH
        self.interactive = interactive
        self.forget_secrets = forget_secrets
        self.state = RunState.RUNNING
        self.error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        if self.state is RunState.RUNNING:
            raise InvalidTransition("run has not finished yet")
        return _EXIT_CODES[self.state]

    def transition(self, state: RunState) -> None:
        if self.state is not RunState.RUNNING:
            raise InvalidTransition(f"run already ended as {self.state.value}, cannot become {state.value}")
        if state is RunState.RUNNING:
            raise InvalidTransition("cannot re-enter running state")
        self.state = state

    def resolve(self, outcome: StepOutcome) -> None:
        self.transition(_STATE_BY_OUTCOME[outcome])

    def __enter__(self) -> "ErrorTrap":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        if exc is not None and (
            not isinstance(exc, (KeyboardInterrupt, Exception)) or self.state is not RunState.RUNNING
        ):
            # SystemExit keeps its own semantics; a settled run is never re-classified.
            self._release()
            return False

        if isinstance(exc, KeyboardInterrupt):
            self.transition(RunState.CANCELLED)
        elif exc is not None:
            logger.error("Installer failed", exc_info=(exc_type, exc, tb))
            self.workspace.error_record.write(describe_exception(exc))
            self.transition(RunState.FAILED)
        elif self.state is RunState.RUNNING:
            # Block finished without an explicit verdict: nothing failed.
            self.transition(RunState.SUCCESS)

        self.error = self.workspace.error_record.consume()
        self._release()
        self._report()
        return True

    def _release(self) -> None:
        if self.forget_secrets is not None:
            self.forget_secrets()
        self.workspace.cleanup()

    def _report(self) -> None:
        if self.state is RunState.CANCELLED:
            self.console.warn("Exit...")
            return

        if self.state is RunState.FAILED:
            self.console.fail(self.error or "An Error occurred")
            self.console.warn(f"See {self.log_path} for more information...")
            if self.interactive and self.console.confirm("Show Logs?"):
                self.console.page(self.log_path)
