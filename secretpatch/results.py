"""
secretpatch/results.py — Outcome types shared by the update and revert orchestrators.
"""
from dataclasses import dataclass, field
from enum import Enum

from secretpatch.changes import ChangeRecord


class Operation(Enum):
    UPDATE = "update"
    REVERT = "revert"


class OperationStatus(Enum):
    SUCCESS = "success"
    NO_CHANGES = "no_changes"
    DRY_RUN_PREVIEW = "dry_run_preview"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self is not OperationStatus.FAILED


@dataclass
class OperationResult:
    """What a run did. Never holds unmasked secret content."""

    operation: Operation
    status: OperationStatus
    secret_name: str
    changed_count: int = 0
    changes: list[ChangeRecord] = field(default_factory=list)
    backup_name: str | None = None
    message: str = ""
    created: bool = False
    source_version_id: str | None = None
    target_version_id: str | None = None
    preview: str | None = None

    def summary(self) -> str:
        head = f"{self.operation.value} {self.secret_name}: {self.status.value}"
        if self.message:
            head = f"{head} ({self.message})"
        return head
