"""
secretpatch — partial updates and safe reverts for JSON secrets.

Update strings ("database.host=new.com,apiKey=abc") are parsed into
tokens, applied to the stored document by dot-path, and written back
only when something actually changed. Reverts restore a historical
version's exact text.
"""
from secretpatch.errors import (
    BackupError,
    DeserializeError,
    InsufficientHistoryError,
    ParseError,
    RevertTargetError,
    SecretPatchError,
    StoreError,
    VersionNotFoundError,
)
from secretpatch.operations import RevertRequest, UpdateRequest, run_operation
from secretpatch.results import Operation, OperationResult, OperationStatus
from secretpatch.revert import revert_secret
from secretpatch.update import update_secret

__version__ = "0.1.0"

__all__ = [
    "BackupError",
    "DeserializeError",
    "InsufficientHistoryError",
    "Operation",
    "OperationResult",
    "OperationStatus",
    "ParseError",
    "RevertRequest",
    "RevertTargetError",
    "SecretPatchError",
    "StoreError",
    "UpdateRequest",
    "VersionNotFoundError",
    "revert_secret",
    "run_operation",
    "update_secret",
]
