"""
secretpatch/backup.py — Backup copies written through the store before a destructive write.

A backup is just another secret holding the pre-change value; its metadata
(source, time, reason) travels as tags and is not kept anywhere else.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from secretpatch.backends import SecretStore
from secretpatch.errors import BackupError, StoreError

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"
UPDATE_SUFFIX = "backup"
REVERT_SUFFIX = "pre-revert"


@dataclass(frozen=True)
class BackupRecord:
    backup_name: str
    source_secret: str
    created_at: datetime
    reason: str

    def tags(self) -> dict[str, str]:
        return {
            "secretpatch:source-secret": self.source_secret,
            "secretpatch:created-at": self.created_at.isoformat(),
            "secretpatch:reason": self.reason,
        }


def backup_name_for(secret_name: str, suffix: str, when: datetime) -> str:
    return f"{secret_name}-{suffix}-{when.strftime(TIMESTAMP_FORMAT)}"


def create_backup(
    store: SecretStore,
    secret_name: str,
    value: str,
    suffix: str,
    reason: str,
    when: datetime,
) -> BackupRecord:
    """
    Copy value to a timestamped sibling secret.

    Raises:
        BackupError: the store rejected the write; callers must not go on
            to overwrite the source secret.
    """
    record = BackupRecord(
        backup_name=backup_name_for(secret_name, suffix, when),
        source_secret=secret_name,
        created_at=when,
        reason=reason,
    )
    try:
        store.write(record.backup_name, value, record.tags())
    except StoreError as e:
        raise BackupError(f"Backup of {secret_name} failed, aborting: {e}") from e
    log.info(f"  [OK] Backup written to {record.backup_name}")
    return record
