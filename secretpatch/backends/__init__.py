"""
secretpatch/backends/__init__.py — Abstract base class for secret stores.

AWS Secrets Manager and HashiCorp Vault both implement this interface,
so the update and revert orchestrators stay backend-agnostic. Values cross
this boundary as raw strings; the orchestrators decide how to decode them.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SecretVersion:
    """One entry of a secret's version history."""

    version_id: str
    created_at: datetime
    enabled: bool = True
    content_type: str | None = None


class SecretStore(ABC):
    """Abstract interface for secret storage backends."""

    name = "unknown"

    @abstractmethod
    def fetch(self, name: str) -> str | None:
        """
        Retrieve the current value of a secret.

        Returns:
            The raw stored string, or None if the secret does not exist.

        Raises:
            StoreError: access, authentication or transport failure.
        """
        ...

    @abstractmethod
    def write(self, name: str, value: str, tags: dict[str, str] | None = None) -> None:
        """
        Store value as the new current version, creating the secret if needed.

        Args:
            name: Secret name / path
            value: Raw string to store
            tags: Operation metadata; backends that cannot tag may ignore it
        """
        ...

    @abstractmethod
    def list_versions(self, name: str) -> list[SecretVersion]:
        """
        List the secret's versions. Order is not guaranteed.

        Raises:
            StoreError: the secret does not exist or cannot be read.
        """
        ...

    @abstractmethod
    def fetch_version(self, name: str, version_id: str) -> str:
        """
        Retrieve the raw value of a specific version.

        Raises:
            StoreError: unknown version id or access failure.
        """
        ...


def get_backend(backend_name: str, settings=None) -> SecretStore:
    """Build the store client named by backend_name ('aws' or 'vault')."""
    if backend_name == "aws":
        from secretpatch.backends.aws_backend import AWSBackend
        if settings is None:
            return AWSBackend()
        return AWSBackend(region=settings.aws_region, profile=settings.aws_profile)
    elif backend_name == "vault":
        from secretpatch.backends.vault_backend import VaultBackend
        if settings is None:
            return VaultBackend()
        return VaultBackend(
            url=settings.vault_addr,
            mount_point=settings.vault_mount_point,
            role_id=settings.vault_role_id,
            secret_id=settings.vault_secret_id,
            token=settings.vault_token,
        )
    raise ValueError(f"Unknown backend: {backend_name}. Use 'aws' or 'vault'.")
