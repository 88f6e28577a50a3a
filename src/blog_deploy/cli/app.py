"""Typer CLI root application."""

import typer

from blog_deploy.core.config import get_settings
from blog_deploy.core.logging import setup_logging

app = typer.Typer(name="blog-deploy", help="Publish the built blog to S3 and CloudFront")


@app.callback()
def _main_callback(
    json_logs: bool = typer.Option(False, "--json-logs", help="Write logs to stderr as JSON lines"),
) -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_logs=json_logs or settings.log_json)


def _register_subcommands() -> None:
    """Register all CLI commands."""
    from blog_deploy.cli.deploy_cmd import deploy_command, plan_command, targets_command

    app.command("deploy")(deploy_command)
    app.command("plan")(plan_command)
    app.command("targets")(targets_command)


_register_subcommands()
