"""Shared test fixtures for AWS credentials, moto-backed S3, and a sample site."""

from collections.abc import Generator
from pathlib import Path
from typing import Any

import boto3
import pytest
from moto import mock_aws

BUCKET = "test-bucket"

DEPLOYMENT_TOML = """\
baseURL = "https://blog.example.com"
title = "example"

[deployment]
order = [".jpg$", ".gif$"]

[[deployment.targets]]
name = "S3_blog.example.com"
URL = "s3://test-bucket?region=us-east-1"
cloudFrontDistributionID = "E2EXAMPLE"

[[deployment.matchers]]
pattern = "^.+\\\\.(js|css|svg|ttf)$"
cacheControl = "max-age=31536000, no-transform, public"
gzip = true

[[deployment.matchers]]
pattern = "^.+\\\\.(png|jpg)$"
cacheControl = "max-age=31536000, no-transform, public"
gzip = false
"""


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point boto3 at fake credentials so nothing reaches real AWS."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client() -> Generator[Any]:
    """Create a moto-mocked S3 client and bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small rendered site: pages, a stylesheet, and images."""
    root = tmp_path / "public"
    (root / "posts" / "hello").mkdir(parents=True)
    (root / "css").mkdir()
    (root / "images").mkdir()

    (root / "index.html").write_text("<html><body>home</body></html>")
    (root / "posts" / "hello" / "index.html").write_text("<html><body>hello</body></html>")
    (root / "css" / "style.css").write_text("body { color: #212529; }\n" * 20)
    (root / "images" / "avatar.jpg").write_bytes(b"\xff\xd8\xff\xe0" + b"jpeg" * 64)
    (root / "images" / "spinner.gif").write_bytes(b"GIF89a" + b"\x00" * 32)
    return root


@pytest.fixture
def deployment_config(tmp_path: Path) -> Path:
    """A hugo.toml with one target, two matchers, and jpg/gif ordering."""
    path = tmp_path / "hugo.toml"
    path.write_text(DEPLOYMENT_TOML)
    return path
