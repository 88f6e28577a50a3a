"""Transfer planning: diff local against remote and order the result.

``compute_plan`` is pure. It never touches the filesystem or the network,
so the same inputs always yield the same plan.
"""

from loguru import logger

from blog_deploy.lib.publisher.errors import TooManyDeletesError
from blog_deploy.lib.publisher.rules import find_matcher, resolve_metadata, resolve_priority, upload_sort_key
from blog_deploy.lib.publisher.types import (
    LocalFile,
    MatcherRule,
    OrderRule,
    RemoteFile,
    Transfer,
    TransferAction,
    TransferPlan,
    UploadReason,
)

UNBOUNDED_DELETES = -1


def _upload_reason(
    local: LocalFile,
    remote: RemoteFile | None,
    matchers: list[MatcherRule],
    *,
    force: bool,
) -> UploadReason | None:
    """Decide whether ``local`` must be uploaded; None means unchanged."""
    if remote is None:
        return UploadReason.NEW
    matcher = find_matcher(local.path, matchers)
    if force or (matcher is not None and matcher.force):
        return UploadReason.FORCED
    if remote.content_hash is None:
        return UploadReason.HASH_MISSING
    if remote.size != local.size:
        return UploadReason.SIZE
    if remote.content_hash != local.content_hash:
        return UploadReason.HASH
    return None


def compute_plan(
    local_files: list[LocalFile],
    remote_files: list[RemoteFile],
    matchers: list[MatcherRule],
    order_rules: list[OrderRule],
    *,
    max_deletes: int = UNBOUNDED_DELETES,
    force: bool = False,
) -> TransferPlan:
    """Compute the ordered set of uploads and deletes for one run.

    Args:
        local_files: Files in the local build output.
        remote_files: Objects currently in the bucket.
        matchers: Matcher rules in declared order (first match wins).
        order_rules: Order rules in declared order.
        max_deletes: Maximum number of deletes allowed; -1 for no limit.
        force: Upload every local file regardless of remote state.

    Returns:
        TransferPlan with uploads in priority order and deletes by path.

    Raises:
        ValueError: If ``max_deletes`` is below -1.
        TooManyDeletesError: If the number of deletes exceeds ``max_deletes``.
    """
    if max_deletes < UNBOUNDED_DELETES:
        msg = f"max_deletes must be -1 (no limit) or a non-negative count, got {max_deletes}"
        raise ValueError(msg)

    remote_by_path = {r.path: r for r in remote_files}
    local_paths = {f.path for f in local_files}

    uploads: list[Transfer] = []
    unchanged = 0
    for local in local_files:
        reason = _upload_reason(local, remote_by_path.get(local.path), matchers, force=force)
        if reason is None:
            unchanged += 1
            continue
        uploads.append(
            Transfer(
                action=TransferAction.UPLOAD,
                path=local.path,
                metadata=resolve_metadata(local.path, matchers),
                reason=reason,
                priority=resolve_priority(local.path, order_rules),
                local=local,
            )
        )

    uploads.sort(key=lambda t: upload_sort_key(t.priority, t.path))

    deletes = [
        Transfer(action=TransferAction.DELETE, path=path)
        for path in sorted(remote_by_path.keys() - local_paths)
    ]

    if max_deletes != UNBOUNDED_DELETES and len(deletes) > max_deletes:
        raise TooManyDeletesError(len(deletes), max_deletes)

    logger.info(
        "Plan: {} uploads, {} deletes, {} unchanged",
        len(uploads),
        len(deletes),
        unchanged,
    )
    return TransferPlan(uploads=tuple(uploads), deletes=tuple(deletes), unchanged=unchanged)
