"""
secretpatch/update.py — Update-in-place orchestrator for JSON secrets.

Steps:
  1. Parse the update string (and removal keys)
  2. Fetch the current value; a missing secret starts from an empty object
  3. Apply each token to the tree, recording one ChangeRecord per token
  4. Stop with NO_CHANGES when nothing effectively changes
  5. Stop with DRY_RUN_PREVIEW (masked) when dry_run is set
  6. Back up the current value (optional); a failed backup aborts the run
  7. Write the merged document, tagged with what changed
"""
import logging
from datetime import datetime
from typing import Callable, Iterable

from secretpatch.audit import AuditTrail, utcnow
from secretpatch.backends import SecretStore
from secretpatch.backup import TIMESTAMP_FORMAT, UPDATE_SUFFIX, create_backup
from secretpatch.changes import ChangeRecord, changed, count_effective
from secretpatch.errors import ParseError, SecretPatchError
from secretpatch.results import Operation, OperationResult, OperationStatus
from secretpatch.tree import (
    Mapping,
    dump_tree,
    get_path,
    load_tree,
    remove_key,
    remove_path,
    set_key,
    set_path,
)
from secretpatch.update_string import PATH_SEPARATOR, UpdateToken, parse, validate_key

log = logging.getLogger(__name__)

TOTAL_STEPS = 7


def apply_token(tree: Mapping, token: UpdateToken, nested_paths: bool = True) -> ChangeRecord:
    """Apply one assignment. Unchanged values are left as stored (type included)."""
    nested = nested_paths and token.is_nested
    old = get_path(tree, token.key) if nested else tree.entries.get(token.key)
    is_changed = changed(old, token.value)
    if is_changed:
        if nested:
            set_path(tree, token.key, token.value)
        else:
            set_key(tree, token.key, token.value)
    return ChangeRecord(path=token.key, old_value=old, new_value=token.value, changed=is_changed)


def apply_removal(tree: Mapping, key: str, nested_paths: bool = True) -> ChangeRecord:
    nested = nested_paths and PATH_SEPARATOR in key
    old = get_path(tree, key) if nested else tree.entries.get(key)
    removed = remove_path(tree, key) if nested else remove_key(tree, key)
    return ChangeRecord(path=key, old_value=old, new_value=None, changed=removed)


def _parse_inputs(
    update_string: str | None, remove_keys: Iterable[str]
) -> tuple[list[UpdateToken], list[str]]:
    removals = list(remove_keys)
    for key in removals:
        validate_key(key)
    if len(set(removals)) != len(removals):
        raise ParseError("Duplicate key in removal list")

    if removals and (update_string is None or not update_string.strip()):
        tokens: list[UpdateToken] = []
    else:
        tokens = parse(update_string)

    overlap = {t.key for t in tokens} & set(removals)
    if overlap:
        raise ParseError(f"Keys both updated and removed: {', '.join(sorted(overlap))}")
    return tokens, removals


def update_secret(
    store: SecretStore,
    secret_name: str,
    update_string: str | None,
    *,
    nested_paths: bool = True,
    backup: bool = False,
    dry_run: bool = False,
    remove_keys: Iterable[str] = (),
    audit: AuditTrail | None = None,
    now: Callable[[], datetime] = utcnow,
) -> OperationResult:
    """
    Apply an update string to the JSON object stored under secret_name.

    Raises:
        ParseError: malformed update string or removal keys (nothing fetched)
        DeserializeError: the stored value is not a JSON object (nothing written)
        BackupError: backup requested but not written (nothing written)
        StoreError: fetch or final write failed
    """
    audit = audit or AuditTrail(backend=store.name)
    try:
        return _run_update(
            store, secret_name, update_string, nested_paths, backup, dry_run,
            remove_keys, audit, now,
        )
    except SecretPatchError as e:
        audit.record("update_failed", secret_name, "failure", error=str(e))
        raise


def _run_update(
    store: SecretStore,
    secret_name: str,
    update_string: str | None,
    nested_paths: bool,
    backup: bool,
    dry_run: bool,
    remove_keys: Iterable[str],
    audit: AuditTrail,
    now: Callable[[], datetime],
) -> OperationResult:
    log.info(f"{'=' * 60}")
    log.info(f"Updating secret: {secret_name}")
    log.info(f"Backend: {store.__class__.__name__}")
    log.info(f"Nested paths: {nested_paths}  Backup: {backup}  Dry run: {dry_run}")

    # ----------------------------------------------------------
    # 1. Parse
    # ----------------------------------------------------------
    log.info(f"Step 1/{TOTAL_STEPS}: Parsing update string...")
    tokens, removals = _parse_inputs(update_string, remove_keys)
    log.info(f"  [OK] {len(tokens)} assignment(s), {len(removals)} removal(s)")
    audit.record(
        "update_started", secret_name,
        keys=[t.key for t in tokens], removals=removals,
    )

    # ----------------------------------------------------------
    # 2. Fetch current value
    # ----------------------------------------------------------
    log.info(f"Step 2/{TOTAL_STEPS}: Fetching current value...")
    current = store.fetch(secret_name)
    if current is None:
        log.info(f"  [OK] {secret_name} does not exist yet, it will be created")
        tree = Mapping()
    else:
        tree = load_tree(current)
        log.info(f"  [OK] Loaded object with {len(tree.entries)} top-level key(s)")

    # ----------------------------------------------------------
    # 3. Apply tokens
    # ----------------------------------------------------------
    log.info(f"Step 3/{TOTAL_STEPS}: Applying changes...")
    records = [apply_token(tree, t, nested_paths) for t in tokens]
    records += [apply_removal(tree, k, nested_paths) for k in removals]
    for record in records:
        log.info(f"  {record.describe()}")
    effective = count_effective(records)
    changed_keys = [r.path for r in records if r.changed]

    # ----------------------------------------------------------
    # 4. No-op
    # ----------------------------------------------------------
    if effective == 0:
        log.info(f"Step 4/{TOTAL_STEPS}: No effective changes, nothing to write")
        audit.record("update_no_changes", secret_name)
        return OperationResult(
            operation=Operation.UPDATE,
            status=OperationStatus.NO_CHANGES,
            secret_name=secret_name,
            changes=records,
            message="all values already current",
        )
    log.info(f"Step 4/{TOTAL_STEPS}: {effective} effective change(s)")

    # ----------------------------------------------------------
    # 5. Dry run
    # ----------------------------------------------------------
    if dry_run:
        log.info(f"Step 5/{TOTAL_STEPS}: Dry run, stopping before backup and write")
        audit.record("update_dry_run", secret_name, changed_keys=changed_keys)
        return OperationResult(
            operation=Operation.UPDATE,
            status=OperationStatus.DRY_RUN_PREVIEW,
            secret_name=secret_name,
            changed_count=effective,
            changes=records,
            created=current is None,
            preview="\n".join(r.describe() for r in records),
            message=f"{effective} change(s) would be written",
        )

    # ----------------------------------------------------------
    # 6. Backup
    # ----------------------------------------------------------
    started = now()
    backup_name = None
    if backup and current is not None:
        log.info(f"Step 6/{TOTAL_STEPS}: Backing up current value...")
        record = create_backup(
            store, secret_name, current, UPDATE_SUFFIX, "pre-update", started
        )
        backup_name = record.backup_name
        audit.record("backup_created", secret_name, backup_name=backup_name)
    elif backup:
        log.info(f"Step 6/{TOTAL_STEPS}: Nothing to back up for a new secret")
    else:
        log.info(f"Step 6/{TOTAL_STEPS}: Backup not requested")

    # ----------------------------------------------------------
    # 7. Write
    # ----------------------------------------------------------
    log.info(f"Step 7/{TOTAL_STEPS}: Writing updated value...")
    tags = {
        "secretpatch:operation": Operation.UPDATE.value,
        "secretpatch:updated-at": started.strftime(TIMESTAMP_FORMAT),
        "secretpatch:changed-keys": " ".join(changed_keys),
    }
    store.write(secret_name, dump_tree(tree), tags)
    log.info(f"  [OK] {secret_name} updated ({effective} change(s))")
    audit.record(
        "update_complete", secret_name,
        changed_keys=changed_keys, backup_name=backup_name,
    )

    return OperationResult(
        operation=Operation.UPDATE,
        status=OperationStatus.SUCCESS,
        secret_name=secret_name,
        changed_count=effective,
        changes=records,
        backup_name=backup_name,
        created=current is None,
        message=f"{effective} change(s) written",
    )
