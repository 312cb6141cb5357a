"""
Backup sessions and transactional apply/undo.
"""

from agentlinker.backup.manager import (
    ApplyResult,
    NoSessionError,
    TaskFailure,
    TransactionManager,
    UndoResult,
)
from agentlinker.backup.session import (
    BackupEntry,
    BackupSession,
    generate_session_id,
)

__all__ = [
    "ApplyResult",
    "BackupEntry",
    "BackupSession",
    "NoSessionError",
    "TaskFailure",
    "TransactionManager",
    "UndoResult",
    "generate_session_id",
]
