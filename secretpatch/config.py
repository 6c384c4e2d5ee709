"""
secretpatch/config.py — Settings read from environment variables.

Environment variables:
    SECRETPATCH_BACKEND       aws | vault (default: aws)
    AWS_REGION                default: us-east-1
    AWS_PROFILE               optional named profile
    VAULT_ADDR                default: http://localhost:8200
    VAULT_ROLE_ID, VAULT_SECRET_ID, VAULT_TOKEN
    VAULT_MOUNT_POINT         default: secret
    SECRETPATCH_AUDIT_LOG     optional path of the JSON-lines audit file
    SLACK_WEBHOOK_URL         optional, posts run notifications
    SECRETPATCH_LOG_LEVEL     default: INFO
    SECRETPATCH_NESTED_PATHS  true | false (default: true)
"""
import logging
import os
from dataclasses import dataclass
from typing import Mapping

BACKENDS = ("aws", "vault")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Settings:
    backend: str = "aws"
    aws_region: str = "us-east-1"
    aws_profile: str | None = None
    vault_addr: str = "http://localhost:8200"
    vault_role_id: str | None = None
    vault_secret_id: str | None = None
    vault_token: str | None = None
    vault_mount_point: str = "secret"
    audit_log: str | None = None
    slack_webhook_url: str | None = None
    log_level: str = "INFO"
    nested_paths: bool = True

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got '{raw}'")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from env (defaults to os.environ). Raises ValueError on bad values."""
    env = os.environ if env is None else env

    backend = env.get("SECRETPATCH_BACKEND", "aws").strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend: {backend}. Use 'aws' or 'vault'.")

    log_level = env.get("SECRETPATCH_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"SECRETPATCH_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

    nested = env.get("SECRETPATCH_NESTED_PATHS")

    return Settings(
        backend=backend,
        aws_region=env.get("AWS_REGION", "us-east-1"),
        aws_profile=env.get("AWS_PROFILE") or None,
        vault_addr=env.get("VAULT_ADDR", "http://localhost:8200"),
        vault_role_id=env.get("VAULT_ROLE_ID") or None,
        vault_secret_id=env.get("VAULT_SECRET_ID") or None,
        vault_token=env.get("VAULT_TOKEN") or None,
        vault_mount_point=env.get("VAULT_MOUNT_POINT", "secret"),
        audit_log=env.get("SECRETPATCH_AUDIT_LOG") or None,
        slack_webhook_url=env.get("SLACK_WEBHOOK_URL") or None,
        log_level=log_level,
        nested_paths=True if nested is None else _parse_bool("SECRETPATCH_NESTED_PATHS", nested),
    )
