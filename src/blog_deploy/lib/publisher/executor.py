"""Transfer plan execution.

Uploads run in priority groups, each file retried with exponential backoff.
The first file that exhausts its retries aborts the run; objects already
written stay in place (each PUT is atomic and a rerun converges). Deletes
run only after every upload succeeded, then one CDN invalidation covers
every changed path.
"""

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger
from tqdm import tqdm

from blog_deploy.lib.publisher.cdn import invalidate
from blog_deploy.lib.publisher.errors import UploadFailedError
from blog_deploy.lib.publisher.local import encode_body
from blog_deploy.lib.publisher.storage import delete_files, put_file
from blog_deploy.lib.publisher.types import PublishResult, Transfer, TransferPlan

_RETRYABLE_ERRORS = (ClientError, BotoCoreError, OSError)


@dataclass(frozen=True)
class ExecutionOptions:
    """Tuning knobs for plan execution.

    Attributes:
        workers: Concurrent uploads within a priority group.
        max_attempts: Attempts per file before the run is aborted.
        base_delay: Backoff before the second attempt; doubles each retry.
        strict_ordering: Finish each priority group before starting the next.
        show_progress: Render a tqdm progress bar for uploads.
    """

    workers: int = 1
    max_attempts: int = 3
    base_delay: float = 1.0
    strict_ordering: bool = True
    show_progress: bool = False


def upload_with_retry(
    client: Any,
    bucket: str,
    key: str,
    transfer: Transfer,
    *,
    max_attempts: int,
    base_delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Upload one planned file, retrying transient failures.

    Returns:
        Bytes uploaded.

    Raises:
        ClientError, BotoCoreError, OSError: The last error once all
            attempts are exhausted.
    """
    assert transfer.local is not None and transfer.metadata is not None

    last_exc: Exception | None = None
    for attempt in range(max_attempts):
        try:
            body = encode_body(transfer.local.source, compress=transfer.metadata.gzip)
            return put_file(client, bucket, key, body, transfer.metadata)
        except _RETRYABLE_ERRORS as e:
            last_exc = e
            logger.warning("Upload of {} failed (attempt {}/{}): {}", transfer.path, attempt + 1, max_attempts, e)

        if attempt < max_attempts - 1:
            delay = base_delay * (2**attempt)
            logger.debug("Upload retry {}/{} for {} in {}s", attempt + 1, max_attempts, transfer.path, delay)
            sleep(delay)

    assert last_exc is not None
    raise last_exc


def _upload_batch(
    client: Any,
    bucket: str,
    prefix: str,
    batch: list[Transfer],
    options: ExecutionOptions,
    result: PublishResult,
    pbar: tqdm,
    sleep: Callable[[float], None],
) -> None:
    """Upload one batch, recording successes on ``result`` as they land."""

    def _upload(transfer: Transfer) -> int:
        return upload_with_retry(
            client,
            bucket,
            f"{prefix}{transfer.path}",
            transfer,
            max_attempts=options.max_attempts,
            base_delay=options.base_delay,
            sleep=sleep,
        )

    def _record(transfer: Transfer, size: int) -> None:
        result.uploaded.append(transfer.path)
        result.bytes_uploaded += size
        pbar.update(1)
        logger.info("Uploaded {} ({})", transfer.path, transfer.reason)

    if options.workers <= 1 or len(batch) == 1:
        for transfer in batch:
            try:
                size = _upload(transfer)
            except Exception as exc:
                raise UploadFailedError(transfer.path, exc, list(result.uploaded)) from exc
            _record(transfer, size)
        return

    failure: tuple[str, BaseException] | None = None
    with ThreadPoolExecutor(max_workers=min(options.workers, len(batch))) as pool:
        futures = {pool.submit(_upload, t): t for t in batch}
        for future in as_completed(futures):
            if future.cancelled():
                continue
            exc = future.exception()
            if exc is None:
                _record(futures[future], future.result())
            elif failure is None:
                failure = (futures[future].path, exc)
                for pending in futures:
                    pending.cancel()

    if failure is not None:
        path, exc = failure
        raise UploadFailedError(path, exc, list(result.uploaded)) from exc


def execute_plan(
    client: Any,
    bucket: str,
    plan: TransferPlan,
    *,
    prefix: str = "",
    options: ExecutionOptions | None = None,
    cdn_client: Any = None,
    distribution_id: str | None = None,
    invalidation_path_limit: int = 1000,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishResult:
    """Apply a transfer plan to the bucket.

    Args:
        client: boto3 S3 client.
        bucket: Bucket name.
        plan: Plan produced by ``compute_plan``.
        prefix: Key prefix within the bucket.
        options: Execution tuning; defaults to sequential uploads.
        cdn_client: boto3 CloudFront client, or None to skip invalidation.
        distribution_id: CloudFront distribution to invalidate.
        invalidation_path_limit: Above this many paths, invalidate ``/*``.
        sleep: Backoff sleep function (injectable for tests).

    Returns:
        PublishResult describing what was applied.

    Raises:
        UploadFailedError: If an upload exhausted its retries. Deletes and
            invalidation are not attempted.
        DeleteFailedError: If the bucket rejected a delete batch.
    """
    options = options or ExecutionOptions()
    start_time = time.monotonic()
    result = PublishResult(unchanged=plan.unchanged)

    if plan.is_empty:
        logger.info("Bucket s3://{}/{} is up to date, nothing to do", bucket, prefix)
        result.duration_seconds = time.monotonic() - start_time
        return result

    if options.strict_ordering:
        batches = [group for _, group in plan.upload_groups()]
    else:
        batches = [list(plan.uploads)] if plan.uploads else []

    with tqdm(
        total=len(plan.uploads),
        unit="file",
        desc="Uploading",
        disable=not options.show_progress,
    ) as pbar:
        for batch in batches:
            _upload_batch(client, bucket, prefix, batch, options, result, pbar, sleep)

    if plan.deletes:
        keys = [f"{prefix}{t.path}" for t in plan.deletes]
        delete_files(client, bucket, keys)
        result.deleted = [t.path for t in plan.deletes]

    if cdn_client is not None and distribution_id:
        result.invalidation_id = invalidate(
            cdn_client,
            distribution_id,
            plan.changed_paths,
            prefix=prefix,
            path_limit=invalidation_path_limit,
        )

    result.duration_seconds = time.monotonic() - start_time
    logger.info(
        "Deploy finished: {} uploaded, {} deleted, {} unchanged in {:.1f}s",
        len(result.uploaded),
        len(result.deleted),
        result.unchanged,
        result.duration_seconds,
    )
    return result
