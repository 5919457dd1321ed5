from __future__ import annotations

from ..context import InstallContext
from ..critical_gate import run_cutover
from ..errors import ValidationError


class CutoverStep:
    step_id = "60_cutover"

    def run(self, ctx: InstallContext) -> bool:
        if ctx.test_outcome is None:
            raise ValidationError("Cutover reached without staged testing")
        run_cutover(ctx, ctx.test_outcome)
        return True
