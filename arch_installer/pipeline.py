from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .engine import StepOutcome, StepSupervisor

logger = logging.getLogger(__name__)


class InstallStep(Protocol):
    """One installation payload.

    Steps may also define `enabled(props) -> bool`; a step without it always runs.
    """

    step_id: str
    name: str

    def run(self, props: Dict[str, Any]) -> int:
        ...


@dataclass(frozen=True)
class PipelineResult:
    outcome: StepOutcome
    ran_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None


def is_enabled(step: InstallStep, props: Dict[str, Any]) -> bool:
    check = getattr(step, "enabled", None)
    return True if check is None else bool(check(props))


def run_pipeline(
    *,
    props: Dict[str, Any],
    steps: Sequence[InstallStep],
    supervisor: StepSupervisor,
) -> PipelineResult:
    """Run steps in order, one at a time; the first non-success stops the run."""

    ran: List[str] = []
    skipped: List[str] = []

    for step in steps:
        if not is_enabled(step, props):
            logger.info("Skipping step %s (disabled)", step.step_id)
            skipped.append(step.step_id)
            continue

        outcome = supervisor.run(step.name, functools.partial(step.run, props))
        if outcome is not StepOutcome.SUCCESS:
            logger.info("Stopping at %s (%s)", step.step_id, outcome.value)
            return PipelineResult(outcome=outcome, ran_steps=ran, skipped_steps=skipped, failed_step=step.step_id)
        ran.append(step.step_id)

    return PipelineResult(outcome=StepOutcome.SUCCESS, ran_steps=ran, skipped_steps=skipped)
