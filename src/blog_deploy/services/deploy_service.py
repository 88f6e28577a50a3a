"""Deploy service: orchestrates one sync of the built site to its bucket.

Loads the deployment config, resolves the target, lists both sides, computes
the transfer plan, and applies it. Every listing and validation step runs
before any mutation, so a failure there leaves the bucket untouched.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from blog_deploy.core.config import Settings
from blog_deploy.lib.publisher.cdn import create_cloudfront_client
from blog_deploy.lib.publisher.deployment import (
    DeploymentConfig,
    ResolvedTarget,
    load_deployment_config,
    resolve_target,
)
from blog_deploy.lib.publisher.executor import ExecutionOptions, execute_plan
from blog_deploy.lib.publisher.local import scan_local_files
from blog_deploy.lib.publisher.planner import compute_plan
from blog_deploy.lib.publisher.rules import PathFilter
from blog_deploy.lib.publisher.storage import create_s3_client, list_remote_files, validate_config
from blog_deploy.lib.publisher.types import PublishResult, TransferPlan


@dataclass
class DeployContext:
    """Everything resolved for a run up to and including the plan."""

    config: DeploymentConfig
    target: ResolvedTarget
    s3_client: Any
    plan: TransferPlan


def load_target(settings: Settings) -> tuple[DeploymentConfig, ResolvedTarget]:
    """Load the deployment config and resolve the target with overrides."""
    config = load_deployment_config(Path(settings.deployment_config))
    target = resolve_target(
        config,
        settings.deploy_target,
        bucket=settings.deploy_bucket,
        region=settings.deploy_region,
        prefix=settings.deploy_prefix,
        cloudfront_distribution_id=settings.cloudfront_distribution_id,
    )
    return config, target


def plan_site(settings: Settings, *, force: bool = False, s3_client: Any = None) -> DeployContext:
    """Compute the transfer plan without mutating the bucket.

    Args:
        settings: Deploy settings (with any CLI overrides applied).
        force: Upload every local file regardless of remote state.
        s3_client: Optional pre-built S3 client.

    Returns:
        DeployContext holding the plan and the resolved target.

    Raises:
        DeploymentConfigError: If the config or target is invalid.
        ListingError: If the bucket or local directory cannot be listed.
        TooManyDeletesError: If the plan exceeds ``settings.max_deletes``.
    """
    config, target = load_target(settings)
    logger.info("Deploying to target {} (s3://{}/{})", target.name, target.bucket, target.prefix)

    client = s3_client or create_s3_client(
        target.region,
        endpoint_url=settings.aws_endpoint_url,
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
    )
    validate_config(client, target.bucket)

    path_filter = PathFilter(target.include, target.exclude)
    matchers = config.matcher_rules()
    local_files = scan_local_files(Path(settings.site_dir), matchers, path_filter)
    remote_files = list_remote_files(client, target.bucket, target.prefix, path_filter)

    plan = compute_plan(
        local_files,
        remote_files,
        matchers,
        config.order_rules(),
        max_deletes=settings.max_deletes,
        force=force,
    )
    return DeployContext(config=config, target=target, s3_client=client, plan=plan)


def apply_plan(
    settings: Settings,
    context: DeployContext,
    *,
    show_progress: bool = False,
    cdn_client: Any = None,
) -> PublishResult:
    """Execute a previously computed plan.

    Raises:
        UploadFailedError: If an upload exhausted its retries.
        DeleteFailedError: If the bucket rejected a delete batch.
    """
    distribution_id = context.target.cloudfront_distribution_id if settings.invalidate_cdn else None
    if distribution_id and cdn_client is None and not context.plan.is_empty:
        cdn_client = create_cloudfront_client(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        )

    options = ExecutionOptions(
        workers=settings.workers,
        max_attempts=settings.upload_max_attempts,
        base_delay=settings.retry_base_delay,
        strict_ordering=settings.strict_ordering,
        show_progress=show_progress,
    )
    return execute_plan(
        context.s3_client,
        context.target.bucket,
        context.plan,
        prefix=context.target.prefix,
        options=options,
        cdn_client=cdn_client,
        distribution_id=distribution_id,
        invalidation_path_limit=settings.invalidation_path_limit,
    )


def deploy_site(
    settings: Settings,
    *,
    force: bool = False,
    dry_run: bool = False,
    show_progress: bool = False,
    s3_client: Any = None,
    cdn_client: Any = None,
) -> PublishResult:
    """Plan and apply a deploy in one step.

    In dry-run mode the planned paths are reported on the result and no
    request that mutates the bucket or CDN is made.
    """
    context = plan_site(settings, force=force, s3_client=s3_client)

    if dry_run:
        logger.info("Dry run: skipping {} uploads and {} deletes", len(context.plan.uploads), len(context.plan.deletes))
        return PublishResult(
            uploaded=[t.path for t in context.plan.uploads],
            deleted=[t.path for t in context.plan.deletes],
            unchanged=context.plan.unchanged,
            dry_run=True,
        )

    return apply_plan(settings, context, show_progress=show_progress, cdn_client=cdn_client)
