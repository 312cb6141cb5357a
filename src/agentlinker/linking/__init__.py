"""
Link planning for client directories.

Clients (Claude, Factory, Codex, Cursor, OpenCode) read their
configuration from fixed locations; the planner maps the resolved
resource set onto those locations and diffs against the filesystem.
Migration copies content clients already hold into the canonical folder
before the first link pass.
"""

from agentlinker.linking.clients import (
    DEFAULT_CONSUMERS,
    ConsumerSpec,
    Scope,
    UnknownClientError,
    select_consumers,
)
from agentlinker.linking.migrate import (
    MigrationCandidate,
    MigrationConflict,
    MigrationMove,
    MigrationPlan,
    same_content,
    scan_migration,
)
from agentlinker.linking.plan import (
    Conflict,
    GeneratedDocument,
    LinkAction,
    LinkPlan,
    LinkTask,
    build_plan,
    link_destination,
    points_to,
)
from agentlinker.linking.status import ResourceStatus, TargetStatus, link_status

__all__ = [
    # Clients
    "DEFAULT_CONSUMERS",
    "ConsumerSpec",
    "Scope",
    "UnknownClientError",
    "select_consumers",
    # Migration
    "MigrationCandidate",
    "MigrationConflict",
    "MigrationMove",
    "MigrationPlan",
    "same_content",
    "scan_migration",
    # Planning
    "Conflict",
    "GeneratedDocument",
    "LinkAction",
    "LinkPlan",
    "LinkTask",
    "build_plan",
    "link_destination",
    "points_to",
    # Status
    "ResourceStatus",
    "TargetStatus",
    "link_status",
]
