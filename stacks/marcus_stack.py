import os
from pathlib import Path

from aws_cdk import (
    BundlingOptions,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_apigateway as apigw,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_s3 as s3,
)
from constructs import Construct

ROOT = Path(__file__).resolve().parents[1]


def _approved_user_phone_numbers() -> str:
    from_env = (os.getenv("MARCUS_APPROVED_USER_PHONE_NUMBERS") or "").strip()
    if from_env:
        return from_env
    file_name = os.getenv("MARCUS_USER_PHONE_NUMBERS_FILE", "user-phone-numbers.txt")
    path = Path(file_name)
    if not path.is_absolute():
        path = ROOT / path
    try:
        numbers = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ValueError(
            f"Can't find file {path}. Set MARCUS_APPROVED_USER_PHONE_NUMBERS or "
            "MARCUS_USER_PHONE_NUMBERS_FILE."
        ) from e
    if not numbers:
        raise ValueError(f"No approved user phone numbers in {path}.")
    return numbers


class MarcusStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        stage_name = os.getenv("STAGE", "prod")
        data_retention_mode = os.getenv("DATA_RETENTION_MODE", "destroy").strip().lower()
        if data_retention_mode not in {"destroy", "retain"}:
            raise ValueError(
                "DATA_RETENTION_MODE must be 'destroy' or 'retain' (case-insensitive)"
            )
        stateful_removal_policy = (
            RemovalPolicy.DESTROY
            if data_retention_mode == "destroy"
            else RemovalPolicy.RETAIN
        )
        schema_version = "2026-10-19"
        user_phone_numbers = _approved_user_phone_numbers()

        name_prefix = f"{construct_id}-{stage_name}"

        # Versioned so a lost concurrent update can still be recovered by hand.
        list_bucket = s3.Bucket(
            self,
            "ListBucket",
            versioned=True,
            removal_policy=stateful_removal_policy,
            auto_delete_objects=data_retention_mode == "destroy",
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
        )

        sms_resolver_fn = _lambda.Function(
            self,
            "SmsResolverHandler",
            function_name=f"{name_prefix}-sms-resolver",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="sms_resolver.handler",
            code=_lambda.Code.from_asset(
                str(ROOT / "lambda"),
                bundling=BundlingOptions(
                    image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                    command=[
                        "bash",
                        "-c",
                        "pip install -r requirements.txt -t /asset-output && cp -au . /asset-output",
                    ],
                ),
            ),
            timeout=Duration.seconds(3),
            tracing=_lambda.Tracing.ACTIVE,
            environment={
                "MARCUS_REGION": Stack.of(self).region,
                "MARCUS_APPROVED_USER_PHONE_NUMBERS": user_phone_numbers,
                "MARCUS_LIST_BUCKET_NAME": list_bucket.bucket_name,
                "SCHEMA_VERSION": schema_version,
            },
        )
        list_bucket.grant_read_write(sms_resolver_fn)

        logs.LogGroup(
            self,
            "SmsResolverLogGroup",
            log_group_name=f"/aws/lambda/{sms_resolver_fn.function_name}",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=stateful_removal_policy,
        )

        rest_api = apigw.RestApi(
            self,
            "SmsGatewayApi",
            rest_api_name=f"{name_prefix}-sms-gateway",
            deploy_options=apigw.StageOptions(stage_name=stage_name),
        )
        receive_sms = rest_api.root.add_resource("receiveSms")
        receive_sms.add_method("POST", apigw.LambdaIntegration(sms_resolver_fn))

        CfnOutput(self, "ListBucketName", value=list_bucket.bucket_name)
        CfnOutput(self, "ReceiveSmsUrl", value=rest_api.url_for_path("/receiveSms"))
        CfnOutput(
            self,
            "UserPhoneNumbers",
            value=user_phone_numbers,
            description="Phone numbers authorized to interact with Marcus.",
        )
