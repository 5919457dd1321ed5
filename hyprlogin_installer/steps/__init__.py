from .step_10_preflight import PreflightStep
from .step_20_detect_system import DetectSystemStep
from .step_30_install_user import InstallUserComponentsStep
from .step_40_configure_autologin import ConfigureAutologinStep
from .step_50_staged_testing import StagedTestingStep
from .step_60_cutover import CutoverStep

__all__ = [
    "PreflightStep",
    "DetectSystemStep",
    "InstallUserComponentsStep",
    "ConfigureAutologinStep",
    "StagedTestingStep",
    "CutoverStep",
]
