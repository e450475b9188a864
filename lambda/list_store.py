from __future__ import annotations

import os
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

LIST_BUCKET_NAME = os.environ.get("MARCUS_LIST_BUCKET_NAME", "")
CONTENT_TYPE = "text/plain; charset=utf-8"

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}

_s3_client: Any | None = None


class ListStoreError(Exception):
    pass


class ListNotFoundError(ListStoreError):
    pass


def _aws_region() -> str | None:
    return os.environ.get("MARCUS_REGION") or os.environ.get("AWS_REGION") or None


def _s3() -> Any:
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client("s3", region_name=_aws_region())
    return _s3_client


def _bucket() -> str:
    if not LIST_BUCKET_NAME:
        raise ListStoreError("MARCUS_LIST_BUCKET_NAME missing")
    return LIST_BUCKET_NAME


def is_configured() -> bool:
    return bool(LIST_BUCKET_NAME)


def configure(bucket: str, client: Any | None = None) -> None:
    """Point the store at ``bucket``, optionally with a preconfigured S3 client."""
    global LIST_BUCKET_NAME, _s3_client
    LIST_BUCKET_NAME = bucket
    if client is not None:
        _s3_client = client


def get(key: str) -> str:
    """Read the object at ``key`` as UTF-8 text.

    Raises ListNotFoundError when the object is absent and ListStoreError for
    any other S3 or transport failure.
    """
    bucket = _bucket()
    try:
        out = _s3().get_object(Bucket=bucket, Key=key)
        raw = out["Body"].read()
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code") or "")
        if code in _NOT_FOUND_CODES:
            raise ListNotFoundError(f"object not found: s3://{bucket}/{key}") from e
        raise ListStoreError(f"get_object failed for s3://{bucket}/{key}: {code or e}") from e
    except BotoCoreError as e:
        raise ListStoreError(f"get_object failed for s3://{bucket}/{key}: {e}") from e
    if not isinstance(raw, bytes):
        return str(raw)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ListStoreError(f"object is not UTF-8 text: s3://{bucket}/{key}") from e


def put(key: str, text: str) -> None:
    bucket = _bucket()
    try:
        _s3().put_object(
            Bucket=bucket,
            Key=key,
            Body=text.encode("utf-8"),
            ContentType=CONTENT_TYPE,
        )
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code") or "")
        raise ListStoreError(f"put_object failed for s3://{bucket}/{key}: {code or e}") from e
    except BotoCoreError as e:
        raise ListStoreError(f"put_object failed for s3://{bucket}/{key}: {e}") from e
