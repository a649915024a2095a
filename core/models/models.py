from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from core.settings import Settings
    from core.system.runner import CommandRunner


class StepStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    WARNED = "warned"
    FAILED = "failed"


@dataclass
class StepOutcome:
    """What a step action reports back to the engine."""
    status: StepStatus
    message: str
    details: List[str] = field(default_factory=list)


def done(message: str, details: Optional[List[str]] = None) -> StepOutcome:
    return StepOutcome(StepStatus.DONE, message, details or [])


def skipped(message: str, details: Optional[List[str]] = None) -> StepOutcome:
    return StepOutcome(StepStatus.SKIPPED, message, details or [])


def warned(message: str, details: Optional[List[str]] = None) -> StepOutcome:
    return StepOutcome(StepStatus.WARNED, message, details or [])


StepAction = Callable[[], Awaitable[StepOutcome]]


@dataclass
class SetupStep:
    name: str
    title: str
    action: StepAction
    optional: bool = False


@dataclass
class StepResult:
    name: str
    title: str
    status: StepStatus
    message: str
    optional: bool = False
    details: List[str] = field(default_factory=list)
    duration_ms: float = 0.0

    def to_serializable(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "status": self.status.value,
            "message": self.message,
            "optional": self.optional,
            "details": list(self.details),
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass
class SetupReport:
    started_at: datetime
    dry_run: bool = False
    results: List[StepResult] = field(default_factory=list)
    finished_at: Optional[datetime] = None
    halted_at: Optional[str] = None

    @property
    def halted(self) -> bool:
        return self.halted_at is not None

    @property
    def succeeded(self) -> bool:
        return not any(r.status is StepStatus.FAILED for r in self.results)

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in StepStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return counts

    def get(self, name: str) -> Optional[StepResult]:
        return next((r for r in self.results if r.name == name), None)

    def to_serializable(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "dry_run": self.dry_run,
            "halted": self.halted,
            "halted_at": self.halted_at,
            "succeeded": self.succeeded,
            "counts": self.counts(),
            "results": [r.to_serializable() for r in self.results],
        }


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str = ""

    def to_serializable(self) -> Dict[str, Any]:
        return {"name": self.name, "ok": self.ok, "detail": self.detail}


# Minimal protocol that describes the parts of the provisioner used by step builders
class ProvisionContext(Protocol):
    settings: "Settings"
    runner: "CommandRunner"

    @property
    def dry_run(self) -> bool: ...
    async def windows_home(self) -> Optional[Path]: ...


StepBuilder = Callable[[ProvisionContext], List[SetupStep]]
