"""Install orchestrator: the six phases, in order, through the pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Optional

from .context import InstallContext
from .errors import MutationError
from .lib.hwdetect import DRM_ROOT, UDEV_DATA_ROOT
from .pipeline import PipelineResult, Step, run_pipeline
from .record_store import save_record
from .steps import (
    ConfigureAutologinStep,
    CutoverStep,
    DetectSystemStep,
    InstallUserComponentsStep,
    PreflightStep,
    StagedTestingStep,
)

logger = logging.getLogger(__name__)


def build_steps(
    *,
    drm_root: Path = DRM_ROOT,
    udev_root: Path = UDEV_DATA_ROOT,
    environ: Optional[Mapping[str, str]] = None,
    current_user: Optional[str] = None,
) -> List[Step]:
    return [
        PreflightStep(),
        DetectSystemStep(drm_root=drm_root, udev_root=udev_root, environ=environ, current_user=current_user),
        InstallUserComponentsStep(),
        ConfigureAutologinStep(),
        StagedTestingStep(),
        CutoverStep(),
    ]


def persist_record(ctx: InstallContext) -> bool:
    """Save the confirmed choices once user-space artifacts exist.

    A failed save is reported but never fails the run; the next update
    falls back to re-detection.
    """

    if not ctx.user_artifacts_installed or ctx.record_saved:
        return False
    try:
        save_record(ctx.paths.record_file, ctx.detected.to_record(), dry_run=ctx.dry_run)
    except (MutationError, ValueError) as e:
        logger.warning("Could not save install record: %s", e)
        ctx.console.warn("Could not save config - future updates may require re-detection")
        return False
    ctx.record_saved = True
    return True


def run_install(ctx: InstallContext, steps: Optional[List[Step]] = None) -> PipelineResult:
    try:
        result = run_pipeline(ctx=ctx, steps=steps if steps is not None else build_steps())
    finally:
        persist_record(ctx)
    logger.info(
        "Install finished: ran=%s stopped_after=%s deviations=%s",
        result.ran_steps,
        result.stopped_after,
        ctx.deviations or "none",
    )
    return result
