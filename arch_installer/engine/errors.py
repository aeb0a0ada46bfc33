from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
# Same code a shell reports for a SIGINT-terminated process.
EXIT_CANCELLED = 130


class EngineError(RuntimeError):
    pass


class AlreadyInProgress(EngineError):
    """A result slot was created while a previous one was never released."""


class MissingSlot(EngineError):
    """No result was finalized for the step that just ended."""


class InvalidTransition(EngineError):
    pass
