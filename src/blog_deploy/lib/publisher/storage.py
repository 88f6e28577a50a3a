"""S3 storage operations for static site deployment.

Provides boto3 client creation, bucket validation, paginated listing,
single-request uploads with cache metadata, and batched deletes.
"""

import re
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from blog_deploy.lib.publisher.errors import DeleteFailedError, ListingError
from blog_deploy.lib.publisher.rules import PathFilter
from blog_deploy.lib.publisher.types import FileMetadata, RemoteFile

# DeleteObjects accepts at most 1000 keys per request
_DELETE_BATCH_SIZE = 1000

_MD5_RE = re.compile(r"^[0-9a-f]{32}$")


def create_s3_client(
    region: str | None = None,
    *,
    endpoint_url: str | None = None,
    connect_timeout: float = 10.0,
    read_timeout: float = 60.0,
    max_attempts: int = 3,
) -> Any:
    """Create a boto3 S3 client.

    Credentials come from the standard boto3 chain (environment, profile,
    or an assumed CI role).

    Args:
        region: AWS region of the bucket.
        endpoint_url: Optional S3-compatible endpoint.
        connect_timeout: Connection timeout in seconds.
        read_timeout: Read timeout in seconds.
        max_attempts: Botocore-level attempts per request.

    Returns:
        Configured boto3 S3 client.
    """
    config = Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "standard"},
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )
    return boto3.client("s3", region_name=region, endpoint_url=endpoint_url, config=config)


def validate_config(client: Any, bucket: str) -> None:
    """Verify bucket access before planning.

    Args:
        client: boto3 S3 client.
        bucket: Bucket name to validate.

    Raises:
        ListingError: If the bucket doesn't exist or credentials are invalid.
    """
    try:
        client.head_bucket(Bucket=bucket)
        logger.debug("Bucket s3://{} is accessible", bucket)
    except ClientError as exc:
        error_code = exc.response["Error"]["Code"]
        if error_code in ("404", "NoSuchBucket"):
            msg = f"Bucket '{bucket}' not found. Verify the deployment target URL."
        elif error_code in ("403", "401"):
            msg = f"Access denied to bucket '{bucket}'. Verify AWS credentials."
        else:
            msg = f"Cannot access bucket '{bucket}': {exc}"
        raise ListingError(msg) from exc
    except BotoCoreError as exc:
        msg = f"Cannot access bucket '{bucket}': {exc}"
        raise ListingError(msg) from exc


def etag_to_hash(etag: str | None) -> str | None:
    """Return the MD5 carried by an ETag, or None for multipart/opaque ETags."""
    if not etag:
        return None
    value = etag.strip('"').lower()
    return value if _MD5_RE.match(value) else None


def list_remote_files(
    client: Any,
    bucket: str,
    prefix: str = "",
    path_filter: PathFilter | None = None,
) -> list[RemoteFile]:
    """List every object under ``prefix`` as a RemoteFile.

    Keys are returned relative to ``prefix``. Objects rejected by
    ``path_filter`` are left out so they are never deleted.

    Raises:
        ListingError: If the listing request fails.
    """
    files: list[RemoteFile] = []
    paginator = client.get_paginator("list_objects_v2")
    try:
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                rel_path = obj["Key"][len(prefix) :]
                if not rel_path or rel_path.endswith("/"):
                    continue
                if path_filter is not None and not path_filter.allows(rel_path):
                    continue
                files.append(
                    RemoteFile(
                        path=rel_path,
                        content_hash=etag_to_hash(obj.get("ETag")),
                        size=obj.get("Size", 0),
                    )
                )
    except (ClientError, BotoCoreError) as exc:
        msg = f"Failed to list s3://{bucket}/{prefix}: {exc}"
        raise ListingError(msg) from exc

    logger.info("Found {} remote files in s3://{}/{}", len(files), bucket, prefix)
    return files


def put_file(client: Any, bucket: str, key: str, body: bytes, metadata: FileMetadata) -> int:
    """Upload one object in a single request.

    A single PUT keeps the ETag equal to the body's MD5, which is what the
    planner compares against on the next run.

    Returns:
        Number of bytes uploaded.
    """
    extra: dict[str, str] = {"ContentType": metadata.content_type}
    if metadata.cache_control:
        extra["CacheControl"] = metadata.cache_control
    if metadata.content_encoding:
        extra["ContentEncoding"] = metadata.content_encoding

    client.put_object(Bucket=bucket, Key=key, Body=body, **extra)
    logger.debug("Uploaded s3://{}/{} ({} bytes, {})", bucket, key, len(body), metadata.content_type)
    return len(body)


def delete_files(client: Any, bucket: str, keys: list[str]) -> list[str]:
    """Delete objects in batches.

    Returns:
        Keys that were deleted.

    Raises:
        DeleteFailedError: If a batch request fails or reports per-key errors.
    """
    deleted: list[str] = []
    for start in range(0, len(keys), _DELETE_BATCH_SIZE):
        batch = keys[start : start + _DELETE_BATCH_SIZE]
        try:
            response = client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as exc:
            raise DeleteFailedError(batch, exc, list(deleted)) from exc

        errors = response.get("Errors", [])
        if errors:
            failed = [e["Key"] for e in errors]
            deleted.extend(k for k in batch if k not in failed)
            raise DeleteFailedError(failed, errors[0].get("Message", "unknown error"), list(deleted))

        deleted.extend(batch)
        logger.info("Deleted {} objects from s3://{}", len(batch), bucket)
    return deleted
