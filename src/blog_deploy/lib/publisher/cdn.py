"""CloudFront invalidation for changed paths."""

import time
from typing import Any
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger


def create_cloudfront_client(*, connect_timeout: float = 10.0, read_timeout: float = 60.0) -> Any:
    """Create a boto3 CloudFront client."""
    config = Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": 3, "mode": "standard"},
    )
    return boto3.client("cloudfront", config=config)


def invalidation_paths(changed_paths: list[str], prefix: str = "", path_limit: int = 1000) -> list[str]:
    """Build the CloudFront path list for a set of changed bucket paths.

    A changed ``index.html`` also invalidates its directory URL
    (``posts/hello/index.html`` adds ``/posts/hello/``), since CloudFront
    caches the pretty URL under its own key. Falls back to a single ``/*``
    wildcard above ``path_limit`` paths.
    """
    paths: set[str] = set()
    for changed in changed_paths:
        key = f"{prefix}{changed}"
        paths.add("/" + quote(key, safe="/~"))
        if key == "index.html" or key.endswith("/index.html"):
            paths.add("/" + quote(key.removesuffix("index.html"), safe="/~"))

    if len(paths) > path_limit:
        return ["/*"]
    return sorted(paths)


def invalidate(
    client: Any,
    distribution_id: str,
    changed_paths: list[str],
    *,
    prefix: str = "",
    path_limit: int = 1000,
) -> str | None:
    """Submit one invalidation request for the changed paths.

    Does not wait for the invalidation to complete. Failures are logged as
    a warning and swallowed; cached copies expire on their own.

    Returns:
        The invalidation id, or None if nothing was submitted.
    """
    if not changed_paths:
        return None

    paths = invalidation_paths(changed_paths, prefix, path_limit)
    try:
        response = client.create_invalidation(
            DistributionId=distribution_id,
            InvalidationBatch={
                "Paths": {"Quantity": len(paths), "Items": paths},
                "CallerReference": f"blog-deploy-{time.time_ns()}",
            },
        )
    except (ClientError, BotoCoreError) as exc:
        logger.warning("CDN invalidation for distribution {} failed: {}", distribution_id, exc)
        return None

    invalidation_id = response["Invalidation"]["Id"]
    logger.info(
        "Submitted CDN invalidation {} for {} paths on distribution {}",
        invalidation_id,
        len(paths),
        distribution_id,
    )
    return invalidation_id
