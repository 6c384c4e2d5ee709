"""
secretpatch/audit.py — Structured audit events for update and revert runs.

Every event goes to the "secretpatch.audit" logger as one JSON line and,
when a path is configured, is appended to that file for SIEM forwarding.
Events never carry secret values, only masked previews and key names.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

log = logging.getLogger("secretpatch.audit")

ACTOR = "secretpatch"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_event(
    action: str,
    secret_name: str,
    result: str,
    metadata: dict | None = None,
    backend: str = "unknown",
) -> dict[str, Any]:
    return {
        "timestamp": utcnow().isoformat(),
        "action": action,
        "actor": ACTOR,
        "resource": secret_name,
        "backend": backend,
        "result": result,
        "metadata": metadata or {},
    }


class AuditTrail:
    """Append-only audit sink. Write failures are logged, never raised."""

    def __init__(self, path: str | Path | None = None, backend: str = "unknown") -> None:
        self.path = Path(path) if path else None
        self.backend = backend
        self.events: list[dict[str, Any]] = []

    def record(
        self, action: str, secret_name: str, result: str = "success", **metadata: Any
    ) -> dict[str, Any]:
        event = make_event(action, secret_name, result, metadata, backend=self.backend)
        self.events.append(event)
        line = json.dumps(event, default=str)
        log.info(line)

        if self.path is not None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a") as f:
                    f.write(line + "\n")
            except OSError as e:
                log.warning(f"Audit file write failed (non-fatal): {e}")
        return event
