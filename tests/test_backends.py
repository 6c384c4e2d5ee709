"""Tests for the AWS and Vault store clients with mocked SDK clients."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from hvac.exceptions import Forbidden, InvalidPath

from secretpatch.backends import get_backend
from secretpatch.backends.aws_backend import AWSBackend, to_tag_list
from secretpatch.backends.vault_backend import VaultBackend, parse_vault_time
from secretpatch.config import Settings
from secretpatch.errors import StoreError


def client_error(code: str, op: str = "GetSecretValue") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


class TestAWSBackend:
    def test_fetch_returns_secret_string(self) -> None:
        sm = MagicMock()
        sm.get_secret_value.return_value = {"SecretString": '{"a":1}'}
        assert AWSBackend(client=sm).fetch("app") == '{"a":1}'
        sm.get_secret_value.assert_called_once_with(SecretId="app")

    def test_fetch_missing_is_none(self) -> None:
        sm = MagicMock()
        sm.get_secret_value.side_effect = client_error("ResourceNotFoundException")
        assert AWSBackend(client=sm).fetch("app") is None

    def test_fetch_access_denied_raises(self) -> None:
        sm = MagicMock()
        sm.get_secret_value.side_effect = client_error("AccessDeniedException")
        with pytest.raises(StoreError):
            AWSBackend(client=sm).fetch("app")

    def test_fetch_binary_rejected(self) -> None:
        sm = MagicMock()
        sm.get_secret_value.return_value = {"SecretBinary": b"\x00"}
        with pytest.raises(StoreError):
            AWSBackend(client=sm).fetch("app")

    def test_write_existing_tags_resource(self) -> None:
        sm = MagicMock()
        AWSBackend(client=sm).write("app", "{}", {"secretpatch:changed-keys": "a b"})
        sm.put_secret_value.assert_called_once_with(SecretId="app", SecretString="{}")
        sm.tag_resource.assert_called_once_with(
            SecretId="app", Tags=[{"Key": "secretpatch:changed-keys", "Value": "a b"}]
        )
        sm.create_secret.assert_not_called()

    def test_write_missing_creates(self) -> None:
        sm = MagicMock()
        sm.put_secret_value.side_effect = client_error("ResourceNotFoundException", "PutSecretValue")
        AWSBackend(client=sm).write("app", "{}", {"k": "v"})
        sm.create_secret.assert_called_once_with(
            Name="app", SecretString="{}", Tags=[{"Key": "k", "Value": "v"}]
        )

    def test_write_failure_raises(self) -> None:
        sm = MagicMock()
        sm.put_secret_value.side_effect = client_error("AccessDeniedException", "PutSecretValue")
        with pytest.raises(StoreError):
            AWSBackend(client=sm).write("app", "{}")

    def test_list_versions_paginates(self) -> None:
        created = datetime(2026, 1, 1, tzinfo=timezone.utc)
        sm = MagicMock()
        sm.list_secret_version_ids.side_effect = [
            {"Versions": [{"VersionId": "a", "CreatedDate": created}], "NextToken": "t"},
            {"Versions": [{"VersionId": "b", "CreatedDate": created}]},
        ]
        versions = AWSBackend(client=sm).list_versions("app")
        assert [v.version_id for v in versions] == ["a", "b"]
        second_call = sm.list_secret_version_ids.call_args_list[1]
        assert second_call.kwargs == {"SecretId": "app", "IncludeDeprecated": True, "NextToken": "t"}

    def test_fetch_version(self) -> None:
        sm = MagicMock()
        sm.get_secret_value.return_value = {"SecretString": "old"}
        assert AWSBackend(client=sm).fetch_version("app", "v1") == "old"
        sm.get_secret_value.assert_called_once_with(SecretId="app", VersionId="v1")

    def test_tag_values_sanitized(self) -> None:
        tags = to_tag_list({"keys": "a,b" + "x" * 300})
        assert tags[0]["Value"].startswith("a_b")
        assert len(tags[0]["Value"]) == 256


class TestVaultBackend:
    def make(self) -> tuple[VaultBackend, MagicMock]:
        client = MagicMock()
        client.is_authenticated.return_value = True
        return VaultBackend(url="http://vault:8200", client=client), client.secrets.kv.v2

    def test_fetch_unwraps_value_field(self) -> None:
        backend, kv = self.make()
        kv.read_secret_version.return_value = {"data": {"data": {"value": '{"a":1}'}}}
        assert backend.fetch("app") == '{"a":1}'

    def test_fetch_plain_kv_as_json(self) -> None:
        backend, kv = self.make()
        kv.read_secret_version.return_value = {"data": {"data": {"api_key": "k"}}}
        assert backend.fetch("app") == '{"api_key": "k"}'

    def test_fetch_missing_is_none(self) -> None:
        backend, kv = self.make()
        kv.read_secret_version.side_effect = InvalidPath()
        assert backend.fetch("app") is None

    def test_fetch_forbidden_raises(self) -> None:
        backend, kv = self.make()
        kv.read_secret_version.side_effect = Forbidden()
        with pytest.raises(StoreError):
            backend.fetch("app")

    def test_write_stores_value_and_metadata(self) -> None:
        backend, kv = self.make()
        backend.write("app", "{}", {"k": "v"})
        kv.create_or_update_secret.assert_called_once_with(
            path="app", secret={"value": "{}"}, mount_point="secret"
        )
        kv.patch_metadata.assert_called_once_with(
            path="app", custom_metadata={"k": "v"}, mount_point="secret"
        )
        # A full metadata update would reset delete_version_after on the path.
        kv.update_metadata.assert_not_called()

    def test_list_versions(self) -> None:
        backend, kv = self.make()
        kv.read_secret_metadata.return_value = {
            "data": {
                "versions": {
                    "1": {"created_time": "2026-01-01T00:00:00.123456789Z", "deletion_time": "", "destroyed": False},
                    "2": {"created_time": "2026-01-02T00:00:00Z", "deletion_time": "2026-01-03T00:00:00Z", "destroyed": False},
                }
            }
        }
        versions = backend.list_versions("app")
        assert [(v.version_id, v.enabled) for v in versions] == [("1", True), ("2", False)]

    def test_fetch_version_bad_id(self) -> None:
        backend, _ = self.make()
        with pytest.raises(StoreError):
            backend.fetch_version("app", "latest")

    def test_no_credentials(self) -> None:
        backend = VaultBackend(url="http://vault:8200")
        backend.role_id = backend.secret_id = backend.token = None
        with pytest.raises(StoreError):
            backend.fetch("app")

    def test_parse_vault_time(self) -> None:
        parsed = parse_vault_time("2026-01-01T00:00:00.123456789Z")
        assert parsed == datetime(2026, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)


class TestGetBackend:
    def test_vault_from_settings(self) -> None:
        backend = get_backend("vault", Settings(backend="vault", vault_mount_point="kv"))
        assert isinstance(backend, VaultBackend)
        assert backend.mount_point == "kv"

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            get_backend("gcp")
