"""Step execution engine.

Turns a named unit of work into an isolated background task, watches it
with a spinner, collects its outcome code, and hands failures and operator
cancellation to one error trap.
"""

from .errors import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    AlreadyInProgress,
    EngineError,
    InvalidTransition,
    MissingSlot,
)
from .monitor import ProgressMonitor, WaitResult
from .result_slot import ResultSlot
from .retry import with_retries
from .supervisor import StepOutcome, StepSupervisor
from .task_runner import Step, TaskHandle, spawn
from .trap import ErrorTrap, RunState
from .workspace import ErrorRecord, Workspace

__all__ = [
    "EXIT_CANCELLED",
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "AlreadyInProgress",
    "EngineError",
    "ErrorRecord",
    "ErrorTrap",
    "InvalidTransition",
    "MissingSlot",
    "ProgressMonitor",
    "ResultSlot",
    "RunState",
    "Step",
    "StepOutcome",
    "StepSupervisor",
    "TaskHandle",
    "WaitResult",
    "Workspace",
    "spawn",
    "with_retries",
]
