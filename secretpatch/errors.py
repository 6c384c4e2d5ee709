"""
secretpatch/errors.py — Error taxonomy for update and revert runs.

Parse and deserialize errors are raised before any mutation, so a run that
fails with them never writes. Store errors wrap whatever the SDK raised.
"""


class SecretPatchError(Exception):
    """Base class for every failure surfaced by an update or revert run."""


class ParseError(SecretPatchError):
    """Raised when an update string is malformed."""


class DeserializeError(SecretPatchError):
    """Raised when the stored value is not a JSON object and cannot be merged."""


class RevertTargetError(SecretPatchError):
    """Raised when a revert target cannot be resolved to usable content."""


class VersionNotFoundError(RevertTargetError):
    """Raised when an explicit version id is not in the secret's history."""


class InsufficientHistoryError(RevertTargetError):
    """Raised when the history is too short for the requested offset."""


class StoreError(SecretPatchError):
    """Raised when the secret store rejects or fails a call."""


class BackupError(StoreError):
    """Raised when the backup copy could not be written."""
