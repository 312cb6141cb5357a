"""Tests for link status reporting."""

import pathlib as _pathlib

import agentlinker.config as config
import agentlinker.linking as linking

R = config.ResourceType


def _task(target: str, action: linking.LinkAction, resource: config.ResourceType) -> linking.LinkTask:
    source = None if action is linking.LinkAction.REMOVE else _pathlib.Path("/src") / target
    return linking.LinkTask(
        target=_pathlib.Path("/dst") / target,
        source=source,
        action=action,
        resource=resource,
        consumers=("claude",),
    )


class TestLinkStatus:
    """Tests for link_status."""

    def test_groups_by_resource_in_order(self) -> None:
        """Statuses come back per resource type, document first."""
        plan = linking.LinkPlan(
            tasks=[_task("b.md", linking.LinkAction.CREATE, R.COMMANDS)],
            satisfied=[_task("AGENTS.md", linking.LinkAction.NOOP, R.DOCUMENT)],
        )

        statuses = linking.link_status(plan)

        assert [status.resource for status in statuses] == [R.DOCUMENT, R.COMMANDS]

    def test_states(self) -> None:
        """Satisfied is linked, create/replace missing, remove stale, conflicts conflict."""
        plan = linking.LinkPlan(
            tasks=[
                _task("a.md", linking.LinkAction.CREATE, R.COMMANDS),
                _task("b.md", linking.LinkAction.REPLACE, R.COMMANDS),
                _task("c.md", linking.LinkAction.REMOVE, R.COMMANDS),
            ],
            satisfied=[_task("d.md", linking.LinkAction.NOOP, R.COMMANDS)],
            conflicts=[
                linking.Conflict(
                    target=_pathlib.Path("/dst/e.md"),
                    source=_pathlib.Path("/src/e.md"),
                    reason="existing file",
                    kind="file",
                    resource=R.COMMANDS,
                )
            ],
        )

        (status,) = linking.link_status(plan)

        assert {t.path.name: t.state for t in status.targets} == {
            "a.md": "missing",
            "b.md": "missing",
            "c.md": "stale",
            "d.md": "linked",
            "e.md": "conflict",
        }
        assert status.to_dict()["missing"] == 2

    def test_empty_plan(self) -> None:
        """Nothing planned means no statuses."""
        assert linking.link_status(linking.LinkPlan()) == []
