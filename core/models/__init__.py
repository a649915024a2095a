"""Data models for steps, results and reports"""
from .models import (
    CheckResult,
    ProvisionContext,
    SetupReport,
    SetupStep,
    StepBuilder,
    StepOutcome,
    StepResult,
    StepStatus,
    done,
    skipped,
    warned,
)

__all__ = [
    "CheckResult",
    "ProvisionContext",
    "SetupReport",
    "SetupStep",
    "StepBuilder",
    "StepOutcome",
    "StepResult",
    "StepStatus",
    "done",
    "skipped",
    "warned",
]
