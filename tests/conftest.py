"""Test configuration and fixtures for ds-storage."""

import boto3
import pytest
from moto import mock_aws

from ds_storage.filesystem import LocalStorage
from ds_storage.objectstorage import S3Storage

TEST_BUCKET = "test-bucket"


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory for testing."""
    return tmp_path


@pytest.fixture
def local_storage(temp_dir):
    """Local storage rooted at a temporary directory."""
    return LocalStorage(root_dir=str(temp_dir), name="local-test")


@pytest.fixture
def sample_file_structure(temp_dir):
    """Create a sample file structure for listing tests."""
    data = temp_dir / "data"
    data.mkdir()
    (data / "file1.txt").write_bytes(b"content1")
    (data / "file2.txt").write_bytes(b"content2content2")

    subdir = data / "subdir"
    subdir.mkdir()
    (subdir / "file3.txt").write_bytes(b"content3")

    return temp_dir


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test_key")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test_secret")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client(aws_credentials):
    """boto3 client against a mocked S3 with an empty test bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture
def s3_storage(s3_client):
    """S3 storage over the mocked test bucket."""
    return S3Storage(client=s3_client, bucket_name=TEST_BUCKET, name="s3-test")
