from typing import List

from core.models import ProvisionContext, SetupStep, StepBuilder
from .system_packages import build_system_package_steps
from .toolchain import build_toolchain_steps
from .repositories import build_repository_steps
from .infrastructure import build_infrastructure_steps
from .claude_config import build_claude_config_steps
from .wsl import build_wsl_steps
from .shell_profile import build_shell_profile_steps


def get_setup_steps(context: ProvisionContext) -> List[SetupStep]:
    """Return the setup steps, in execution order, for the given context."""
    builders: List[StepBuilder] = [
        build_system_package_steps,
        build_toolchain_steps,
        build_repository_steps,
        build_infrastructure_steps,
        build_claude_config_steps,
        build_wsl_steps,
        build_shell_profile_steps,
    ]
    steps = [step for builder in builders for step in builder(context)]
    return steps
