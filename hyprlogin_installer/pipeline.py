from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from .context import InstallContext

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single install phase.

    `run` returns False to end the run early without an error (the
    operator chose a path that makes later phases moot).
    """

    step_id: str

    def run(self, ctx: InstallContext) -> bool:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    stopped_after: Optional[str]

    @property
    def completed(self) -> bool:
        return self.stopped_after is None


def run_pipeline(*, ctx: InstallContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps in order; an exception ends the run at the failing step."""

    ran: List[str] = []
    current: Optional[str] = None
    try:
        for step in steps:
            current = step.step_id
            logger.info("Running step %s", step.step_id)
            keep_going = step.run(ctx)
            ran.append(step.step_id)
            if not keep_going:
                logger.info("Stopping after %s", step.step_id)
                return PipelineResult(ran_steps=ran, stopped_after=step.step_id)
    except Exception:
        logger.error("Step %s failed (completed: %s)", current, ", ".join(ran) or "none")
        raise
    return PipelineResult(ran_steps=ran, stopped_after=None)
