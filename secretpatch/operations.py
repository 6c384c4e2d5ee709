"""
secretpatch/operations.py — One entry point for every operation.

run_operation dispatches on the Operation enum and turns any
SecretPatchError into a FAILED result carrying the error message, so
callers get a result object for every run.
"""
import logging
from dataclasses import dataclass, field

from secretpatch.audit import AuditTrail
from secretpatch.backends import SecretStore
from secretpatch.errors import SecretPatchError
from secretpatch.results import Operation, OperationResult, OperationStatus
from secretpatch.revert import revert_secret
from secretpatch.update import update_secret

log = logging.getLogger(__name__)


@dataclass
class UpdateRequest:
    secret_name: str
    update_string: str | None
    remove_keys: list[str] = field(default_factory=list)
    nested_paths: bool = True
    backup: bool = False
    dry_run: bool = False


@dataclass
class RevertRequest:
    secret_name: str
    version_id: str | None = None
    versions_back: int | None = None
    backup: bool = False
    dry_run: bool = False


def run_operation(
    operation: Operation,
    store: SecretStore,
    request: UpdateRequest | RevertRequest,
    audit: AuditTrail | None = None,
) -> OperationResult:
    try:
        if operation is Operation.UPDATE:
            if not isinstance(request, UpdateRequest):
                raise TypeError("UPDATE needs an UpdateRequest")
            return update_secret(
                store,
                request.secret_name,
                request.update_string,
                nested_paths=request.nested_paths,
                backup=request.backup,
                dry_run=request.dry_run,
                remove_keys=request.remove_keys,
                audit=audit,
            )
        elif operation is Operation.REVERT:
            if not isinstance(request, RevertRequest):
                raise TypeError("REVERT needs a RevertRequest")
            return revert_secret(
                store,
                request.secret_name,
                version_id=request.version_id,
                versions_back=request.versions_back,
                backup=request.backup,
                dry_run=request.dry_run,
                audit=audit,
            )
        raise ValueError(f"Unknown operation: {operation}")
    except SecretPatchError as e:
        log.error(f"[FAIL] {operation.value} {request.secret_name}: {e}")
        return OperationResult(
            operation=operation,
            status=OperationStatus.FAILED,
            secret_name=request.secret_name,
            message=str(e),
        )
