"""
Link status reporting.

Status is derived from a plan: every desired target is either linked
(a satisfied no-op), missing (a pending create or replace) or in
conflict. Pending removals are reported as stale.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import agentlinker.config.types as config_types
import agentlinker.linking.plan as plan_module

TargetState = _typing.Literal["linked", "missing", "conflict", "stale"]


@_dataclasses.dataclass(frozen=True)
class TargetStatus:
    """State of one target path."""

    path: _pathlib.Path
    state: TargetState
    source: _pathlib.Path | None = None
    reason: str | None = None
    consumers: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": str(self.path),
            "state": self.state,
            "source": str(self.source) if self.source else None,
            "reason": self.reason,
            "consumers": list(self.consumers),
        }


@_dataclasses.dataclass
class ResourceStatus:
    """All targets of one resource type."""

    resource: config_types.ResourceType
    targets: list[TargetStatus] = _dataclasses.field(default_factory=list)

    def count(self, state: TargetState) -> int:
        """Number of targets in a state."""
        return sum(1 for target in self.targets if target.state == state)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "resource": self.resource.value,
            "linked": self.count("linked"),
            "missing": self.count("missing"),
            "conflict": self.count("conflict"),
            "stale": self.count("stale"),
            "targets": [target.to_dict() for target in self.targets],
        }


def link_status(plan: plan_module.LinkPlan) -> list[ResourceStatus]:
    """
    Group a plan's entries by resource type.

    Returns:
        One ResourceStatus per resource type that has any target, in
        ResourceType order, targets sorted by path.
    """
    grouped: dict[config_types.ResourceType, list[TargetStatus]] = {}

    for task in plan.satisfied:
        grouped.setdefault(task.resource, []).append(
            TargetStatus(task.target, "linked", task.source, consumers=task.consumers)
        )
    for task in plan.tasks:
        state: TargetState = "stale" if task.action is plan_module.LinkAction.REMOVE else "missing"
        grouped.setdefault(task.resource, []).append(
            TargetStatus(task.target, state, task.source, task.reason, task.consumers)
        )
    for conflict in plan.conflicts:
        grouped.setdefault(conflict.resource, []).append(
            TargetStatus(
                conflict.target,
                "conflict",
                conflict.source,
                conflict.reason,
                conflict.consumers,
            )
        )

    return [
        ResourceStatus(resource, sorted(grouped[resource], key=lambda t: str(t.path)))
        for resource in config_types.ResourceType
        if resource in grouped
    ]
