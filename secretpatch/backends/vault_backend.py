"""
secretpatch/backends/vault_backend.py — HashiCorp Vault KV v2 store client using hvac.

Authentication: AppRole (role_id + secret_id), falling back to a token
Secret engine: KV v2, mount point configurable (default "secret")
Storage: the raw secret string is kept under a single data field ("value")
         so reverts restore it byte for byte. Entries written by other tools
         as plain key/value pairs are read back as a JSON object.
Tags: merged into the path's custom_metadata; other metadata settings are left alone
"""
import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError

from secretpatch.backends import SecretStore, SecretVersion
from secretpatch.errors import StoreError

log = logging.getLogger(__name__)

DEFAULT_MOUNT_POINT = "secret"
VALUE_FIELD = "value"
_FRACTION = re.compile(r"\.(\d+)")


def parse_vault_time(value: str) -> datetime:
    """Parse Vault's RFC 3339 timestamps, which carry nanosecond precision."""
    text = value.replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class VaultBackend(SecretStore):
    """
    Vault KV v2 store client.

    Authenticates via AppRole using VAULT_ROLE_ID / VAULT_SECRET_ID, or
    VAULT_TOKEN when no AppRole credentials are set.
    """

    name = "vault"

    def __init__(
        self,
        url: str | None = None,
        mount_point: str = DEFAULT_MOUNT_POINT,
        role_id: str | None = None,
        secret_id: str | None = None,
        token: str | None = None,
        client: Any = None,
    ) -> None:
        self.vault_addr = url or os.environ.get("VAULT_ADDR", "http://localhost:8200")
        self.mount_point = mount_point
        self.role_id = role_id or os.environ.get("VAULT_ROLE_ID")
        self.secret_id = secret_id or os.environ.get("VAULT_SECRET_ID")
        self.token = token or os.environ.get("VAULT_TOKEN")
        self._client = client

    def _get_client(self) -> "hvac.Client":
        """Return an authenticated Vault client, re-authenticating if needed."""
        if self._client is None or not self._client.is_authenticated():
            client = hvac.Client(url=self.vault_addr)
            if self.role_id and self.secret_id:
                client.auth.approle.login(
                    role_id=self.role_id,
                    secret_id=self.secret_id,
                )
            elif self.token:
                client.token = self.token
            else:
                raise StoreError(
                    "No Vault credentials: set VAULT_ROLE_ID/VAULT_SECRET_ID or VAULT_TOKEN"
                )
            self._client = client
        return self._client

    @property
    def _kv(self) -> Any:
        return self._get_client().secrets.kv.v2

    @staticmethod
    def _unpack(data: dict[str, Any]) -> str:
        if set(data) == {VALUE_FIELD} and isinstance(data[VALUE_FIELD], str):
            return data[VALUE_FIELD]
        return json.dumps(data)

    def fetch(self, name: str) -> str | None:
        try:
            response = self._kv.read_secret_version(
                path=name, mount_point=self.mount_point, raise_on_deleted_version=True
            )
        except InvalidPath:
            return None
        except (VaultError, requests.RequestException) as e:
            raise StoreError(f"Failed to get secret {name}: {e}") from e
        return self._unpack(response["data"]["data"])

    def write(self, name: str, value: str, tags: dict[str, str] | None = None) -> None:
        try:
            self._kv.create_or_update_secret(
                path=name, secret={VALUE_FIELD: value}, mount_point=self.mount_point
            )
            if tags:
                self._kv.patch_metadata(
                    path=name, custom_metadata=dict(tags), mount_point=self.mount_point
                )
        except (VaultError, requests.RequestException) as e:
            raise StoreError(f"Failed to write secret {name}: {e}") from e
        log.info(f"  Wrote secret: {name}")

    def list_versions(self, name: str) -> list[SecretVersion]:
        try:
            metadata = self._kv.read_secret_metadata(path=name, mount_point=self.mount_point)
        except (VaultError, requests.RequestException) as e:
            raise StoreError(f"Failed to list versions of {name}: {e}") from e

        versions = []
        for number, info in metadata["data"].get("versions", {}).items():
            deleted = bool(info.get("deletion_time")) or bool(info.get("destroyed"))
            versions.append(
                SecretVersion(
                    version_id=str(number),
                    created_at=parse_vault_time(info["created_time"]),
                    enabled=not deleted,
                )
            )
        return versions

    def fetch_version(self, name: str, version_id: str) -> str:
        try:
            response = self._kv.read_secret_version(
                path=name,
                version=int(version_id),
                mount_point=self.mount_point,
                raise_on_deleted_version=True,
            )
        except ValueError as e:
            raise StoreError(f"Invalid Vault version id '{version_id}'") from e
        except (VaultError, requests.RequestException) as e:
            raise StoreError(
                f"Failed to get version {version_id} of secret {name}: {e}"
            ) from e
        return self._unpack(response["data"]["data"])
