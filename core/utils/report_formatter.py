"""Plain-text rendering of setup reports and verification results."""

from __future__ import annotations
from typing import Dict, List

from core.models import CheckResult, SetupReport, StepStatus

STATUS_ICONS = {
    StepStatus.DONE: "✅",
    StepStatus.SKIPPED: "⏭️ ",
    StepStatus.WARNED: "⚠️ ",
    StepStatus.FAILED: "❌",
}


def format_report(report: SetupReport) -> str:
    lines: List[str] = []
    for result in report.results:
        lines.append(f"{STATUS_ICONS[result.status]} {result.name:<24} {result.message}")
        lines.extend(f"      {detail}" for detail in result.details)

    counts = report.counts()
    summary = ", ".join(f"{counts[status.value]} {status.value}" for status in StepStatus)
    lines.append("")
    lines.append(f"Steps: {summary}" + (" (dry-run)" if report.dry_run else ""))
    if report.halted:
        lines.append(f"❌ Setup halted at '{report.halted_at}'")
    else:
        lines.append("✅ Setup complete!")
    return "\n".join(lines)


def format_checks(checks: List[CheckResult]) -> str:
    lines = []
    for check in checks:
        icon = "✅" if check.ok else "❌"
        suffix = f"  ({check.detail})" if check.detail else ""
        lines.append(f"{icon} {check.name}{suffix}")
    passed = sum(1 for c in checks if c.ok)
    lines.append("")
    lines.append(f"{passed}/{len(checks)} checks passed")
    return "\n".join(lines)


def format_section(title: str, body: List[str]) -> str:
    rule = "=" * 44
    return "\n".join([rule, f"  {title}", rule, "", *[f"  {line}" for line in body], ""])


def format_services(endpoints: Dict[str, str]) -> str:
    width = max((len(name) for name in endpoints), default=0) + 1
    return format_section(
        "Services", [f"{name + ':':<{width}} {value}" for name, value in endpoints.items()]
    )


def format_next_steps(steps: List[str]) -> str:
    return format_section("Next Steps", [f"{i}. {step}" for i, step in enumerate(steps, 1)])
