from __future__ import annotations

from ..context import InstallContext
from ..staged_testing import StagedTestingGate


class StagedTestingStep:
    step_id = "50_staged_testing"

    def run(self, ctx: InstallContext) -> bool:
        ctx.test_outcome = StagedTestingGate(ctx).run()
        return True
