"""Object storage client configuration (S3 and S3-compatible stores)."""

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from .settings import settings


def get_storage_client() -> BaseClient:
    """
    Build the boto3 S3 client used for presigning and multipart sessions.
    An endpoint URL switches the client to an S3-compatible store.
    """
    kwargs = {
        "aws_access_key_id": settings.aws_access_key_id or None,
        "aws_secret_access_key": settings.aws_secret_access_key or None,
        "region_name": settings.aws_region,
        "config": Config(signature_version="s3v4", retries={"max_attempts": 3}),
    }
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url

    return boto3.client("s3", **kwargs)


def get_bucket_name() -> str:
    """Get bucket name for uploads."""
    return settings.s3_bucket_name
