"""Ordered actions with compensating undo steps."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Action = Callable[[list[object]], object]
Compensation = Callable[[object], None]


@dataclass(frozen=True)
class CompensatedStep:
    """An action paired with the action that undoes it.

    The action receives the results of the steps that ran before it; the
    compensation receives the action's own result.
    """

    name: str
    action: Action
    compensate: Compensation | None = None


@dataclass
class CompensatedSequence:
    """Run steps in order; on failure undo completed steps in reverse.

    Compensation failures are logged and suppressed so that the error of the
    failing step is the one that propagates.
    """

    steps: list[CompensatedStep] = field(default_factory=list)

    def add(
        self,
        name: str,
        action: Action,
        compensate: Compensation | None = None,
    ) -> "CompensatedSequence":
        """Append a step and return the sequence for chaining."""
        self.steps.append(CompensatedStep(name, action, compensate))
        return self

    def run(self) -> list[object]:
        """Execute every step and return their results in order."""
        completed: list[tuple[CompensatedStep, object]] = []
        for step in self.steps:
            try:
                result = step.action([result for _, result in completed])
            except Exception:
                logger.warning(
                    "Step failed, compensating",
                    extra={"step": step.name, "completed": len(completed)},
                )
                _unwind(completed)
                raise
            completed.append((step, result))
        return [result for _, result in completed]


def _unwind(completed: list[tuple[CompensatedStep, object]]) -> None:
    for step, result in reversed(completed):
        if step.compensate is None:
            continue
        try:
            step.compensate(result)
        except Exception:
            logger.exception("Compensation failed", extra={"step": step.name})
