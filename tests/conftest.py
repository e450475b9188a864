import importlib
import io
import sys

import pytest
from botocore.exceptions import ClientError

BUCKET = "marcus-list-bucket"


class FakeS3:
    def __init__(self, objects: dict[str, str | bytes] | None = None):
        self.objects: dict[tuple[str, str], str | bytes] = {
            (BUCKET, key): text for key, text in (objects or {}).items()
        }
        self.calls: list[tuple[str, str]] = []
        self.fail_get = False
        self.fail_put = False

    def get_object(self, *, Bucket, Key):
        self.calls.append(("get", Key))
        if self.fail_get:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "GetObject")
        if (Bucket, Key) not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject",
            )
        data = self.objects[(Bucket, Key)]
        if isinstance(data, str):
            data = data.encode("utf-8")
        return {"Body": io.BytesIO(data)}

    def put_object(self, *, Bucket, Key, Body, ContentType):
        self.calls.append(("put", Key))
        if self.fail_put:
            raise ClientError({"Error": {"Code": "SlowDown", "Message": "slow down"}}, "PutObject")
        assert ContentType.startswith("text/plain")
        self.objects[(Bucket, Key)] = Body.decode("utf-8")
        return {}

    def text(self, key: str) -> str:
        return self.objects[(BUCKET, key)]


def load_lambda_modules(monkeypatch, *, bucket: str = BUCKET):
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("MARCUS_LIST_BUCKET_NAME", bucket)
    monkeypatch.setenv("MARCUS_APPROVED_USER_PHONE_NUMBERS", "+15550001111\n+15550002222")
    monkeypatch.setenv("SCHEMA_VERSION", "2026-10-19")
    if "lambda" not in sys.path:
        sys.path.insert(0, "lambda")
    import command_parser
    import list_codec
    import list_ops
    import list_store
    import sms_resolver

    # Reload in dependency order so every module sees the patched environment.
    for module in (list_codec, list_store, list_ops, command_parser, sms_resolver):
        importlib.reload(module)
    return list_store, list_ops, command_parser, sms_resolver


@pytest.fixture
def fake_s3():
    return FakeS3()


@pytest.fixture
def lists(monkeypatch, fake_s3):
    store, ops, parser, resolver = load_lambda_modules(monkeypatch)
    store._s3_client = fake_s3
    return ops
