"""
secretpatch/backends/aws_backend.py — AWS Secrets Manager store client using boto3.

Authentication: boto3 credential chain (SSO, instance role, env vars, ~/.aws/credentials)
Versioning: every put_secret_value creates a version; deprecated versions
            (no staging label) are listed too so offsets reach further back
Tags: written with tag_resource; values are sanitized to the characters
      Secrets Manager accepts and cut to 256 characters
"""
import logging
import os
import re
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from secretpatch.backends import SecretStore, SecretVersion
from secretpatch.errors import StoreError

log = logging.getLogger(__name__)

NOT_FOUND = "ResourceNotFoundException"
MAX_TAG_KEY = 128
MAX_TAG_VALUE = 256
_TAG_DISALLOWED = re.compile(r"[^\w\s.:/=+\-@]")


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def to_tag_list(tags: dict[str, str]) -> list[dict[str, str]]:
    """Convert a tag mapping into Secrets Manager's Key/Value list form."""
    return [
        {
            "Key": _TAG_DISALLOWED.sub("_", k)[:MAX_TAG_KEY],
            "Value": _TAG_DISALLOWED.sub("_", v)[:MAX_TAG_VALUE],
        }
        for k, v in tags.items()
    ]


class AWSBackend(SecretStore):
    """
    AWS Secrets Manager store client.

    Reads credentials from the boto3 credential chain:
      1. Environment: AWS_ACCESS_KEY_ID + AWS_SECRET_ACCESS_KEY
      2. AWS SSO profile
      3. EC2/ECS instance role
      4. ~/.aws/credentials
    """

    name = "aws"

    def __init__(
        self,
        region: str | None = None,
        profile: str | None = None,
        client: Any = None,
    ) -> None:
        self._region = region or os.environ.get("AWS_REGION", "us-east-1")
        if client is not None:
            self._sm = client
            return

        session_kwargs: dict[str, Any] = {"region_name": self._region}
        if profile:
            session_kwargs["profile_name"] = profile
        session = boto3.Session(**session_kwargs)
        self._sm = session.client("secretsmanager")

    def fetch(self, name: str) -> str | None:
        try:
            resp = self._sm.get_secret_value(SecretId=name)
        except ClientError as e:
            if _error_code(e) == NOT_FOUND:
                return None
            raise StoreError(f"Failed to get secret {name}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to get secret {name}: {e}") from e
        return self._secret_string(name, resp)

    def write(self, name: str, value: str, tags: dict[str, str] | None = None) -> None:
        tag_list = to_tag_list(tags or {})
        try:
            try:
                self._sm.put_secret_value(SecretId=name, SecretString=value)
            except ClientError as e:
                if _error_code(e) != NOT_FOUND:
                    raise
                create_kwargs: dict[str, Any] = {"Name": name, "SecretString": value}
                if tag_list:
                    create_kwargs["Tags"] = tag_list
                self._sm.create_secret(**create_kwargs)
                log.info(f"  Created secret: {name}")
                return

            if tag_list:
                self._sm.tag_resource(SecretId=name, Tags=tag_list)
            log.info(f"  Updated secret: {name}")
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to write secret {name}: {e}") from e

    def list_versions(self, name: str) -> list[SecretVersion]:
        versions: list[SecretVersion] = []
        kwargs: dict[str, Any] = {"SecretId": name, "IncludeDeprecated": True}
        try:
            while True:
                resp = self._sm.list_secret_version_ids(**kwargs)
                for v in resp.get("Versions", []):
                    versions.append(
                        SecretVersion(
                            version_id=v["VersionId"],
                            created_at=v["CreatedDate"],
                            enabled=True,
                        )
                    )
                token = resp.get("NextToken")
                if not token:
                    break
                kwargs["NextToken"] = token
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to list versions of {name}: {e}") from e
        return versions

    def fetch_version(self, name: str, version_id: str) -> str:
        try:
            resp = self._sm.get_secret_value(SecretId=name, VersionId=version_id)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(
                f"Failed to get version {version_id} of secret {name}: {e}"
            ) from e
        return self._secret_string(name, resp)

    @staticmethod
    def _secret_string(name: str, resp: dict[str, Any]) -> str:
        if "SecretString" not in resp:
            raise StoreError(f"Secret {name} holds binary data, which is not supported")
        return resp["SecretString"]
