"""
Workflow Runner
===============

Runs an ordered list of steps that share a context dict.

Each step is tagged:
- FATAL: a failure stops the workflow; later steps do not run.
- BEST_EFFORT: a failure is logged and recorded, the workflow continues.

Nothing is rolled back. The returned WorkflowOutcome lists what ran, what
failed and the shared context, so callers can report partial results.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class StepPolicy(str, Enum):
    FATAL = "fatal"
    BEST_EFFORT = "best_effort"


class StepStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[Dict[str, Any]], Any]
    policy: StepPolicy = StepPolicy.FATAL


@dataclass
class StepResult:
    name: str
    policy: StepPolicy
    status: StepStatus
    error: Optional[str] = None


@dataclass
class WorkflowOutcome:
    name: str
    results: List[StepResult] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)
    fatal_error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.fatal_error is None

    @property
    def failed_step(self) -> Optional[str]:
        for result in self.results:
            if result.status == StepStatus.FAILED and result.policy == StepPolicy.FATAL:
                return result.name
        return None

    @property
    def warnings(self) -> List[StepResult]:
        """Best-effort steps that failed."""
        return [
            r for r in self.results
            if r.status == StepStatus.FAILED and r.policy == StepPolicy.BEST_EFFORT
        ]

    def status_of(self, step_name: str) -> Optional[StepStatus]:
        for result in self.results:
            if result.name == step_name:
                return result.status
        return None


def run_workflow(name: str, steps: List[Step], context: Optional[Dict[str, Any]] = None) -> WorkflowOutcome:
    """
    Execute steps in order.

    A step's return value, when not None, is stored in the context under the
    step's name. Exceptions from BEST_EFFORT steps are logged and recorded;
    the first exception from a FATAL step ends the run and marks the remaining
    steps SKIPPED.
    """
    outcome = WorkflowOutcome(name=name, context=context if context is not None else {})

    for index, step in enumerate(steps):
        try:
            value = step.run(outcome.context)
        except Exception as e:
            outcome.results.append(StepResult(step.name, step.policy, StepStatus.FAILED, error=str(e)))
            if step.policy == StepPolicy.BEST_EFFORT:
                logger.warning(f"[{name}] best-effort step '{step.name}' failed: {e}")
                continue

            logger.error(f"[{name}] step '{step.name}' failed, aborting: {e}")
            outcome.fatal_error = e
            for skipped in steps[index + 1:]:
                outcome.results.append(StepResult(skipped.name, skipped.policy, StepStatus.SKIPPED))
            return outcome

        if value is not None:
            outcome.context[step.name] = value
        outcome.results.append(StepResult(step.name, step.policy, StepStatus.DONE))

    logger.info(f"[{name}] completed with {len(outcome.warnings)} warning(s)")
    return outcome
