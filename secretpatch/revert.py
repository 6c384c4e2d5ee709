"""
secretpatch/revert.py — Version selection and revert orchestrator.

A revert writes the exact stored text of a historical version back as the
new current version. The content is never decoded and re-encoded, so values
written before the JSON convention are restored as opaque text.

Steps:
  1. List versions, newest first (index 0 = current)
  2. Resolve the target by version id or by offset ("N versions back")
  3. Fetch the target's raw value
  4. Check it parses as JSON (warning only)
  5. Stop with DRY_RUN_PREVIEW (masked) when dry_run is set
  6. Back up the current value (optional); a failed backup aborts the run
  7. Write the target's raw value as current
"""
import json
import logging
from datetime import datetime
from typing import Callable

from secretpatch.audit import AuditTrail, utcnow
from secretpatch.backends import SecretStore, SecretVersion
from secretpatch.backup import REVERT_SUFFIX, TIMESTAMP_FORMAT, create_backup
from secretpatch.changes import mask
from secretpatch.errors import (
    BackupError,
    InsufficientHistoryError,
    RevertTargetError,
    SecretPatchError,
    VersionNotFoundError,
)
from secretpatch.results import Operation, OperationResult, OperationStatus

log = logging.getLogger(__name__)

TOTAL_STEPS = 7
DEFAULT_VERSIONS_BACK = 1


def sort_versions(versions: list[SecretVersion]) -> list[SecretVersion]:
    return sorted(versions, key=lambda v: v.created_at, reverse=True)


def resolve_target(
    versions: list[SecretVersion],
    version_id: str | None = None,
    versions_back: int | None = None,
) -> tuple[int, SecretVersion]:
    """
    Pick the revert target from a newest-first version list.

    Returns:
        (index, version) where index 0 is the current version.

    Raises:
        VersionNotFoundError: version_id is not listed, or the target is disabled
        InsufficientHistoryError: the offset reaches past the oldest version
        RevertTargetError: both selectors given, or a non-positive offset
    """
    if version_id is not None and versions_back is not None:
        raise RevertTargetError("Give either a version id or an offset, not both")

    if version_id is not None:
        for index, version in enumerate(versions):
            if version.version_id == version_id:
                break
        else:
            raise VersionNotFoundError(f"Version {version_id} not found")
    else:
        offset = DEFAULT_VERSIONS_BACK if versions_back is None else versions_back
        if offset < 1:
            raise RevertTargetError(f"Offset must be at least 1, got {offset}")
        if len(versions) < 2:
            raise InsufficientHistoryError(
                f"Only {len(versions)} version(s) exist, nothing to revert to"
            )
        if offset >= len(versions):
            raise InsufficientHistoryError(
                f"Cannot go back {offset} version(s): only {len(versions)} exist"
            )
        index = offset
        version = versions[index]

    if not version.enabled:
        raise VersionNotFoundError(f"Version {version.version_id} is deleted or disabled")
    return index, version


def looks_like_json(value: str) -> bool:
    try:
        json.loads(value)
    except json.JSONDecodeError:
        return False
    return True


def revert_secret(
    store: SecretStore,
    secret_name: str,
    *,
    version_id: str | None = None,
    versions_back: int | None = None,
    backup: bool = False,
    dry_run: bool = False,
    audit: AuditTrail | None = None,
    now: Callable[[], datetime] = utcnow,
) -> OperationResult:
    """
    Restore a historical version of secret_name as its current value.

    Raises:
        RevertTargetError (and subclasses): target cannot be resolved or is empty
        BackupError: backup requested but not written (nothing written)
        StoreError: listing, fetching or the final write failed
    """
    audit = audit or AuditTrail(backend=store.name)
    try:
        return _run_revert(
            store, secret_name, version_id, versions_back, backup, dry_run, audit, now
        )
    except SecretPatchError as e:
        audit.record("revert_failed", secret_name, "failure", error=str(e))
        raise


def _run_revert(
    store: SecretStore,
    secret_name: str,
    version_id: str | None,
    versions_back: int | None,
    backup: bool,
    dry_run: bool,
    audit: AuditTrail,
    now: Callable[[], datetime],
) -> OperationResult:
    log.info(f"{'=' * 60}")
    log.info(f"Reverting secret: {secret_name}")
    log.info(f"Backend: {store.__class__.__name__}")
    target_desc = f"version {version_id}" if version_id else (
        f"{versions_back or DEFAULT_VERSIONS_BACK} version(s) back"
    )
    log.info(f"Target: {target_desc}  Backup: {backup}  Dry run: {dry_run}")

    # ----------------------------------------------------------
    # 1. List versions
    # ----------------------------------------------------------
    log.info(f"Step 1/{TOTAL_STEPS}: Listing versions...")
    versions = sort_versions(store.list_versions(secret_name))
    log.info(f"  [OK] {len(versions)} version(s)")

    # ----------------------------------------------------------
    # 2. Resolve target
    # ----------------------------------------------------------
    log.info(f"Step 2/{TOTAL_STEPS}: Resolving target...")
    index, target = resolve_target(versions, version_id, versions_back)
    current = versions[0]
    log.info(
        f"  [OK] Target {target.version_id} "
        f"(created {target.created_at.isoformat()}, {index} back)"
    )
    audit.record(
        "revert_started", secret_name,
        source_version_id=current.version_id, target_version_id=target.version_id,
    )

    if index == 0:
        log.info("  Target is already the current version, nothing to write")
        return OperationResult(
            operation=Operation.REVERT,
            status=OperationStatus.NO_CHANGES,
            secret_name=secret_name,
            source_version_id=current.version_id,
            target_version_id=target.version_id,
            message="target is the current version",
        )

    # ----------------------------------------------------------
    # 3. Fetch target content
    # ----------------------------------------------------------
    log.info(f"Step 3/{TOTAL_STEPS}: Fetching version {target.version_id}...")
    content = store.fetch_version(secret_name, target.version_id)
    if not content:
        raise RevertTargetError(f"Version {target.version_id} of {secret_name} is empty")
    log.info(f"  [OK] Fetched {len(content)} character(s)")

    # ----------------------------------------------------------
    # 4. Validate (best effort)
    # ----------------------------------------------------------
    log.info(f"Step 4/{TOTAL_STEPS}: Validating content...")
    if looks_like_json(content):
        log.info("  [OK] Content is valid JSON")
    else:
        log.warning("  [WARN] Content is not valid JSON, restoring it as plain text")

    # ----------------------------------------------------------
    # 5. Dry run
    # ----------------------------------------------------------
    if dry_run:
        preview = mask(content)
        log.info(f"Step 5/{TOTAL_STEPS}: Dry run, would restore [{preview}]")
        audit.record(
            "revert_dry_run", secret_name,
            source_version_id=current.version_id, target_version_id=target.version_id,
        )
        return OperationResult(
            operation=Operation.REVERT,
            status=OperationStatus.DRY_RUN_PREVIEW,
            secret_name=secret_name,
            changed_count=1,
            source_version_id=current.version_id,
            target_version_id=target.version_id,
            preview=preview,
            message=f"would restore version {target.version_id}",
        )

    # ----------------------------------------------------------
    # 6. Backup current value
    # ----------------------------------------------------------
    started = now()
    backup_name = None
    if backup:
        log.info(f"Step 6/{TOTAL_STEPS}: Backing up current value...")
        current_value = store.fetch(secret_name)
        if current_value is None:
            raise BackupError(
                f"Backup of {secret_name} failed, aborting: no current value to copy"
            )
        record = create_backup(
            store, secret_name, current_value, REVERT_SUFFIX, "pre-revert", started
        )
        backup_name = record.backup_name
        audit.record("backup_created", secret_name, backup_name=backup_name)
    else:
        log.info(f"Step 6/{TOTAL_STEPS}: Backup not requested")

    # ----------------------------------------------------------
    # 7. Write target content
    # ----------------------------------------------------------
    log.info(f"Step 7/{TOTAL_STEPS}: Writing version {target.version_id} as current...")
    tags = {
        "secretpatch:operation": Operation.REVERT.value,
        "secretpatch:reverted-at": started.strftime(TIMESTAMP_FORMAT),
        "secretpatch:source-version": current.version_id,
        "secretpatch:target-version": target.version_id,
    }
    store.write(secret_name, content, tags)
    log.info(f"  [OK] {secret_name} reverted to version {target.version_id}")
    audit.record(
        "revert_complete", secret_name,
        source_version_id=current.version_id,
        target_version_id=target.version_id,
        backup_name=backup_name,
    )

    return OperationResult(
        operation=Operation.REVERT,
        status=OperationStatus.SUCCESS,
        secret_name=secret_name,
        changed_count=1,
        backup_name=backup_name,
        source_version_id=current.version_id,
        target_version_id=target.version_id,
        message=f"restored version {target.version_id}",
    )
