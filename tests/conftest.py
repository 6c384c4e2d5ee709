"""Pytest configuration and fixtures for secretpatch tests."""

from datetime import datetime, timedelta, timezone

import pytest

from secretpatch.audit import AuditTrail
from secretpatch.backends import SecretStore, SecretVersion
from secretpatch.errors import StoreError

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)
FIXED_NOW = datetime(2026, 10, 19, 12, 30, 45, tzinfo=timezone.utc)


class FakeSecretStore(SecretStore):
    """In-memory SecretStore that records every call.

    Each write appends a version one minute after the previous one, so
    creation order matches write order.
    """

    name = "fake"

    def __init__(self) -> None:
        self.secrets: dict[str, list[dict]] = {}
        self.calls: list[tuple] = []
        self.fail_writes_to: set[str] = set()
        self._tick = 0

    def seed(self, name: str, *values: str) -> None:
        for value in values:
            self._append(name, value, {})

    def _append(self, name: str, value: str, tags: dict[str, str]) -> None:
        self._tick += 1
        history = self.secrets.setdefault(name, [])
        history.append(
            {
                "version_id": f"v{self._tick}",
                "created_at": BASE_TIME + timedelta(minutes=self._tick),
                "value": value,
                "tags": dict(tags),
            }
        )

    def fetch(self, name: str) -> str | None:
        self.calls.append(("fetch", name))
        history = self.secrets.get(name)
        return history[-1]["value"] if history else None

    def write(self, name: str, value: str, tags: dict[str, str] | None = None) -> None:
        self.calls.append(("write", name))
        if any(name.startswith(prefix) for prefix in self.fail_writes_to):
            raise StoreError(f"Access denied writing {name}")
        self._append(name, value, tags or {})

    def list_versions(self, name: str) -> list[SecretVersion]:
        self.calls.append(("list_versions", name))
        if name not in self.secrets:
            raise StoreError(f"Secret {name} not found")
        # Deliberately oldest-first; callers must sort.
        return [
            SecretVersion(version_id=v["version_id"], created_at=v["created_at"])
            for v in self.secrets[name]
        ]

    def fetch_version(self, name: str, version_id: str) -> str:
        self.calls.append(("fetch_version", name, version_id))
        for v in self.secrets.get(name, []):
            if v["version_id"] == version_id:
                return v["value"]
        raise StoreError(f"Version {version_id} of {name} not found")

    # Helpers for assertions

    def writes(self) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "write"]

    def current(self, name: str) -> str:
        return self.secrets[name][-1]["value"]

    def current_tags(self, name: str) -> dict[str, str]:
        return self.secrets[name][-1]["tags"]


@pytest.fixture
def store() -> FakeSecretStore:
    return FakeSecretStore()


@pytest.fixture
def audit() -> AuditTrail:
    return AuditTrail(backend="fake")


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW
