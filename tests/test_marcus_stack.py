import sys
from pathlib import Path

import pytest
from aws_cdk import App
from aws_cdk import assertions

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stacks.marcus_stack import MarcusStack


def _app() -> App:
    # Skip Docker bundling of the Lambda asset during synth.
    return App(context={"aws:cdk:bundling-stacks": []})


def _synth_template(monkeypatch, mode: str | None = None) -> dict:
    monkeypatch.setenv("STAGE", "test")
    monkeypatch.setenv("MARCUS_APPROVED_USER_PHONE_NUMBERS", "+15550001111")
    if mode is None:
        monkeypatch.delenv("DATA_RETENTION_MODE", raising=False)
    else:
        monkeypatch.setenv("DATA_RETENTION_MODE", mode)
    app = _app()
    stack = MarcusStack(app, "MarcusTestStack")
    return assertions.Template.from_stack(stack).to_json()


def _resources(template: dict, resource_type: str) -> list[dict]:
    return [r for r in template["Resources"].values() if r.get("Type") == resource_type]


def _sms_function(template: dict) -> dict:
    for resource in _resources(template, "AWS::Lambda::Function"):
        if (resource.get("Properties") or {}).get("Handler") == "sms_resolver.handler":
            return resource
    raise AssertionError("sms_resolver.handler function not found")


def test_list_bucket_is_versioned_and_private(monkeypatch):
    template = _synth_template(monkeypatch)

    buckets = _resources(template, "AWS::S3::Bucket")
    assert len(buckets) == 1
    props = buckets[0]["Properties"]
    assert props["VersioningConfiguration"] == {"Status": "Enabled"}
    assert props["BucketEncryption"]["ServerSideEncryptionConfiguration"][0][
        "ServerSideEncryptionByDefault"
    ] == {"SSEAlgorithm": "AES256"}
    assert props["PublicAccessBlockConfiguration"]["BlockPublicAcls"] is True


def test_sms_resolver_function_configuration(monkeypatch):
    template = _synth_template(monkeypatch)

    props = _sms_function(template)["Properties"]
    env = props["Environment"]["Variables"]

    assert props["Runtime"] == "python3.12"
    assert props["Timeout"] == 3
    assert props["TracingConfig"] == {"Mode": "Active"}
    assert env["MARCUS_APPROVED_USER_PHONE_NUMBERS"] == "+15550001111"
    assert "MARCUS_LIST_BUCKET_NAME" in env
    assert "MARCUS_REGION" in env


def test_receive_sms_route_is_post_only(monkeypatch):
    template = _synth_template(monkeypatch)

    paths = [r["Properties"]["PathPart"] for r in _resources(template, "AWS::ApiGateway::Resource")]
    methods = [r["Properties"]["HttpMethod"] for r in _resources(template, "AWS::ApiGateway::Method")]

    assert paths == ["receiveSms"]
    assert methods == ["POST"]
    assert {"ListBucketName", "ReceiveSmsUrl", "UserPhoneNumbers"} <= set(template["Outputs"])


def test_data_retention_mode_retain(monkeypatch):
    template = _synth_template(monkeypatch, mode="retain")

    assert {r.get("DeletionPolicy") for r in _resources(template, "AWS::S3::Bucket")} == {"Retain"}
    assert not _resources(template, "Custom::S3AutoDeleteObjects")


def test_default_data_retention_mode_is_destroy(monkeypatch):
    template = _synth_template(monkeypatch)

    assert {r.get("DeletionPolicy") for r in _resources(template, "AWS::S3::Bucket")} == {"Delete"}
    assert len(_resources(template, "Custom::S3AutoDeleteObjects")) == 1


def test_invalid_data_retention_mode_fails_fast(monkeypatch):
    monkeypatch.setenv("MARCUS_APPROVED_USER_PHONE_NUMBERS", "+15550001111")
    monkeypatch.setenv("DATA_RETENTION_MODE", "keep-forever")

    with pytest.raises(ValueError, match="DATA_RETENTION_MODE"):
        MarcusStack(_app(), "MarcusInvalidRetentionStack")


def test_phone_numbers_are_read_from_file(monkeypatch, tmp_path):
    numbers = tmp_path / "numbers.txt"
    numbers.write_text("+15550001111\n+15550002222\n", encoding="utf-8")
    monkeypatch.delenv("MARCUS_APPROVED_USER_PHONE_NUMBERS", raising=False)
    monkeypatch.setenv("MARCUS_USER_PHONE_NUMBERS_FILE", str(numbers))

    stack = MarcusStack(_app(), "MarcusFileNumbersStack")
    template = assertions.Template.from_stack(stack).to_json()

    env = _sms_function(template)["Properties"]["Environment"]["Variables"]
    assert env["MARCUS_APPROVED_USER_PHONE_NUMBERS"] == "+15550001111\n+15550002222"


def test_missing_phone_numbers_fails_fast(monkeypatch, tmp_path):
    monkeypatch.delenv("MARCUS_APPROVED_USER_PHONE_NUMBERS", raising=False)
    monkeypatch.setenv("MARCUS_USER_PHONE_NUMBERS_FILE", str(tmp_path / "absent.txt"))

    with pytest.raises(ValueError, match="Can't find file"):
        MarcusStack(_app(), "MarcusNoNumbersStack")


def test_lambda_asset_installs_reply_library():
    requirements = (ROOT / "lambda" / "requirements.txt").read_text(encoding="utf-8").split()

    assert any(line.startswith("twilio") for line in requirements)
