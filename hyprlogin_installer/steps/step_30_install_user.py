from __future__ import annotations

from ..artifacts import install_user_components
from ..autostart import present_locker_instructions
from ..context import InstallContext


class InstallUserComponentsStep:
    step_id = "30_install_user"

    def run(self, ctx: InstallContext) -> bool:
        install_user_components(ctx, ctx.detected)
        present_locker_instructions(ctx, ctx.detected)
        return True
