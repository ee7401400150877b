"""S3Client / S3CacheClient with botocore's Stubber."""

from __future__ import annotations

import io
from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from backend.errors import MissingConfigError, NotFoundError, S3Error
from config_env import S3Config
from services.s3_client import S3CacheClient, S3Client

CONFIG = S3Config(
    bucket="results",
    region="us-east-1",
    access_key="AKIATEST",
    secret_key="secret",
    path_prefix="/tenant-a/",
)


@pytest.fixture
def boto_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
    )


@pytest.fixture
def stubbed(boto_client):
    with Stubber(boto_client) as stubber:
        yield S3CacheClient(CONFIG, client=boto_client), stubber
        stubber.assert_no_pending_responses()


@pytest.mark.parametrize(
    "prefix, key, expected",
    [
        ("", "/a/b.json", "/a/b.json"),
        ("/tenant-a/", "/a/b.json", "tenant-a/a/b.json"),
        ("tenant-a", "a.json", "tenant-a/a.json"),
        ("/", "/a.json", "a.json"),
    ],
)
def test_get_prefixed_key(prefix, key, expected):
    client = S3Client(S3Config(path_prefix=prefix))
    assert client.get_prefixed_key(key) == expected


def test_unconfigured_client_raises_missing_config():
    client = S3Client(S3Config())
    assert not client.is_enabled
    with pytest.raises(MissingConfigError, match="S3 configuration is not set"):
        client.create_upload_url("uploads/a.csv", "text/csv")


def test_create_upload_url_is_presigned_put():
    client = S3Client(
        S3Config(
            bucket="uploads",
            endpoint="http://minio.test:9000",
            access_key="AKIATEST",
            secret_key="secret",
            force_path_style=True,
            expiration_time=600,
        )
    )
    url = client.create_upload_url("uploads/org/abc/report.csv", "text/csv")

    parsed = urlparse(url)
    assert parsed.netloc == "minio.test:9000"
    assert parsed.path == "/uploads/uploads/org/abc/report.csv"
    assert parse_qs(parsed.query)["X-Amz-Expires"] == ["600"]


async def test_upload_results_encodes_metadata(stubbed):
    cache, stubber = stubbed
    stubber.add_response(
        "put_object",
        {},
        {
            "Bucket": "results",
            "Key": "tenant-a/q1.json",
            "Body": b'{"rows": []}',
            "ContentType": "application/json",
            "Metadata": {"fields": '{"a": 1}', "columns": '["a"]', "rowCount": "0"},
        },
    )
    await cache.upload_results(
        "q1", b'{"rows": []}', {"fields": {"a": 1}, "columns": ["a"], "rowCount": 0}
    )


async def test_get_results_metadata(stubbed):
    cache, stubber = stubbed
    stubber.add_response(
        "head_object",
        {"ContentLength": 12, "ContentType": "application/json", "Metadata": {"rowCount": "0"}},
        {"Bucket": "results", "Key": "tenant-a/q1.json"},
    )
    head = await cache.get_results_metadata("q1")
    assert head["Metadata"] == {"rowCount": "0"}


async def test_get_results_metadata_missing_returns_none(stubbed):
    cache, stubber = stubbed
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
    assert await cache.get_results_metadata("q1") is None


async def test_get_results_reads_body(stubbed):
    cache, stubber = stubbed
    body = b'{"rows": [1]}'
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(body), len(body))},
        {"Bucket": "results", "Key": "tenant-a/q1.json"},
    )
    assert await cache.get_results("q1") == body


async def test_get_results_missing_raises_not_found(stubbed):
    cache, stubber = stubbed
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    with pytest.raises(NotFoundError):
        await cache.get_results("q1")


async def test_storage_failure_raises_s3_error_with_key(stubbed):
    cache, stubber = stubbed
    stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(S3Error) as excinfo:
        await cache.get_results("q1")
    assert excinfo.value.data == {"key": "q1"}
    assert "AccessDenied" in excinfo.value.message
