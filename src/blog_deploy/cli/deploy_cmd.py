"""Deploy CLI commands for syncing the built site to object storage."""

from typing import Any, NoReturn

import typer
from loguru import logger
from pydantic import ValidationError

from blog_deploy.core.config import Settings, get_settings
from blog_deploy.lib.publisher.errors import DeleteFailedError, PublisherError, UploadFailedError
from blog_deploy.lib.publisher.types import PublishResult, TransferPlan


def _settings_with_overrides(**overrides: Any) -> Settings:
    """Load settings and apply CLI options that were explicitly given.

    Overrides go through the same validation as environment values.
    """
    settings = get_settings()
    update = {key: value for key, value in overrides.items() if value is not None}
    if not update:
        return settings
    try:
        return Settings.model_validate({**settings.model_dump(), **update})
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            typer.echo(f"Error: invalid value for {field}: {error['msg']}")
        raise typer.Exit(code=1) from exc


def _echo_plan(plan: TransferPlan, *, verbose: bool) -> None:
    """Print the transfer plan, one line per operation."""
    if plan.is_empty:
        typer.echo(f"No changes: {plan.unchanged} files already up to date.")
        return

    for transfer in plan.uploads:
        line = f"  upload  {transfer.path}"
        if verbose and transfer.metadata is not None:
            cache = transfer.metadata.cache_control or "-"
            encoding = transfer.metadata.content_encoding or "-"
            line += f"  [{transfer.reason}; {transfer.metadata.content_type}; cache={cache}; encoding={encoding}]"
        typer.echo(line)
    for transfer in plan.deletes:
        typer.echo(f"  delete  {transfer.path}")

    typer.echo(
        f"\nPlan: {len(plan.uploads)} to upload, {len(plan.deletes)} to delete, {plan.unchanged} unchanged"
    )


def _echo_result(result: PublishResult) -> None:
    size_mb = result.bytes_uploaded / (1024 * 1024)
    typer.echo(f"\nUploaded: {len(result.uploaded)} files ({size_mb:.2f} MB)")
    typer.echo(f"Deleted: {len(result.deleted)} files")
    typer.echo(f"Unchanged: {result.unchanged} files")
    if result.invalidation_id:
        typer.echo(f"CDN invalidation: {result.invalidation_id}")
    typer.echo(f"Duration: {result.duration_seconds:.1f}s")


def _fail(exc: PublisherError) -> NoReturn:
    """Report a publisher error and exit non-zero."""
    logger.error("Deploy failed: {}", exc)
    typer.echo(f"Error: {exc}")
    if isinstance(exc, UploadFailedError):
        typer.echo(f"Cause: {exc.cause!r}")
        typer.echo(f"Uploaded before failure ({len(exc.uploaded)}):")
        for path in exc.uploaded:
            typer.echo(f"  {path}")
    elif isinstance(exc, DeleteFailedError):
        typer.echo(f"Deleted before failure ({len(exc.deleted)}):")
        for key in exc.deleted:
            typer.echo(f"  {key}")
    raise typer.Exit(code=1) from exc


def deploy_command(
    site_dir: str | None = typer.Option(None, "--site-dir", help="Directory containing the rendered site"),
    config: str | None = typer.Option(None, "--config", help="Site config file with a [deployment] section"),
    target: str | None = typer.Option(None, "--target", help="Deployment target name"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without changing anything"),
    force: bool = typer.Option(False, "--force", help="Upload every file even if unchanged"),
    max_deletes: int | None = typer.Option(
        None, "--max-deletes", min=-1, help="Maximum files to delete (-1 for no limit)"
    ),
    workers: int | None = typer.Option(None, "--workers", help="Concurrent uploads per priority group"),
    invalidate_cdn: bool | None = typer.Option(
        None, "--invalidate-cdn/--no-invalidate-cdn", help="Invalidate changed paths on the CDN"
    ),
    confirm: bool = typer.Option(False, "--confirm", help="Ask before applying changes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show per-file metadata"),
) -> None:
    """Sync the built site to the deployment target."""
    from blog_deploy.services.deploy_service import apply_plan, plan_site

    settings = _settings_with_overrides(
        site_dir=site_dir,
        deployment_config=config,
        deploy_target=target,
        max_deletes=max_deletes,
        workers=workers,
        invalidate_cdn=invalidate_cdn,
    )

    try:
        context = plan_site(settings, force=force)
    except PublisherError as exc:
        _fail(exc)

    typer.echo(f"Target: {context.target.name} (s3://{context.target.bucket}/{context.target.prefix})")
    _echo_plan(context.plan, verbose=verbose)

    if dry_run:
        typer.echo("\nDry run: no changes applied.")
        return
    if context.plan.is_empty:
        return
    if confirm and not typer.confirm("Apply these changes?", default=True):
        typer.echo("Aborted.")
        raise typer.Exit(code=1)

    try:
        result = apply_plan(settings, context, show_progress=True)
    except PublisherError as exc:
        _fail(exc)

    _echo_result(result)


def plan_command(
    site_dir: str | None = typer.Option(None, "--site-dir", help="Directory containing the rendered site"),
    config: str | None = typer.Option(None, "--config", help="Site config file with a [deployment] section"),
    target: str | None = typer.Option(None, "--target", help="Deployment target name"),
    force: bool = typer.Option(False, "--force", help="Plan uploads for every file"),
    max_deletes: int | None = typer.Option(
        None, "--max-deletes", min=-1, help="Maximum files to delete (-1 for no limit)"
    ),
) -> None:
    """Show what a deploy would change, without changing anything."""
    from blog_deploy.services.deploy_service import plan_site

    settings = _settings_with_overrides(
        site_dir=site_dir,
        deployment_config=config,
        deploy_target=target,
        max_deletes=max_deletes,
    )
    try:
        context = plan_site(settings, force=force)
    except PublisherError as exc:
        _fail(exc)

    _echo_plan(context.plan, verbose=True)


def targets_command(
    config: str | None = typer.Option(None, "--config", help="Site config file with a [deployment] section"),
) -> None:
    """List deployment targets from the site config."""
    from pathlib import Path

    from blog_deploy.lib.publisher.deployment import load_deployment_config, parse_target_url

    settings = _settings_with_overrides(deployment_config=config)
    try:
        deployment = load_deployment_config(Path(settings.deployment_config))
        if not deployment.targets:
            typer.echo("No deployment targets configured.")
            return
        for entry in deployment.targets:
            bucket, region, prefix = parse_target_url(entry.url)
            cdn = entry.cloudfront_distribution_id or "-"
            typer.echo(f"  {entry.name:30s}  s3://{bucket}/{prefix}  region={region or '-'}  cdn={cdn}")
    except PublisherError as exc:
        _fail(exc)
