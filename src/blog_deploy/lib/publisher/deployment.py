"""Deployment configuration loading from the site's ``hugo.toml``.

Parses the ``[deployment]`` section (order rules, targets, matchers) into
validated pydantic models and converts them into the rule types consumed by
the planner. Keys are matched case-insensitively, as the site generator does.
"""

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from blog_deploy.lib.publisher.errors import DeploymentConfigError
from blog_deploy.lib.publisher.types import MatcherRule, OrderRule


def _check_regex(value: str) -> str:
    try:
        re.compile(value)
    except re.error as exc:
        msg = f"Invalid regular expression {value!r}: {exc}"
        raise ValueError(msg) from exc
    return value


class MatcherConfig(BaseModel):
    """A ``[[deployment.matchers]]`` entry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    pattern: str
    cache_control: str | None = Field(default=None, alias="cachecontrol")
    content_type: str | None = Field(default=None, alias="contenttype")
    gzip: bool = False
    force: bool = False

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _check_regex(v)


class TargetConfig(BaseModel):
    """A ``[[deployment.targets]]`` entry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    url: str
    cloudfront_distribution_id: str | None = Field(default=None, alias="cloudfrontdistributionid")
    include: str | None = None
    exclude: str | None = None


class DeploymentConfig(BaseModel):
    """The ``[deployment]`` section of the site configuration."""

    model_config = ConfigDict(extra="ignore")

    order: list[str] = Field(default_factory=list)
    targets: list[TargetConfig] = Field(default_factory=list)
    matchers: list[MatcherConfig] = Field(default_factory=list)

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: list[str]) -> list[str]:
        return [_check_regex(p) for p in v]

    def matcher_rules(self) -> list[MatcherRule]:
        """Matcher rules in declared order."""
        return [
            MatcherRule(
                pattern=re.compile(m.pattern),
                cache_control=m.cache_control,
                content_type=m.content_type,
                gzip=m.gzip,
                force=m.force,
            )
            for m in self.matchers
        ]

    def order_rules(self) -> list[OrderRule]:
        """Order rules; priority is the declared index."""
        return [OrderRule(pattern=re.compile(p), priority=i) for i, p in enumerate(self.order)]


@dataclass(frozen=True)
class ResolvedTarget:
    """A deployment target with its URL broken into bucket coordinates."""

    name: str
    bucket: str
    region: str | None
    prefix: str
    cloudfront_distribution_id: str | None
    include: str | None = None
    exclude: str | None = None


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(v) for v in value]
    return value


def load_deployment_config(config_path: Path) -> DeploymentConfig:
    """Read and validate the deployment section of a site config file.

    Args:
        config_path: Path to ``hugo.toml``.

    Returns:
        Validated DeploymentConfig.

    Raises:
        DeploymentConfigError: If the file is missing, is not valid TOML,
            has no ``[deployment]`` section, or fails validation.
    """
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        msg = f"Deployment config not found: {config_path}"
        raise DeploymentConfigError(msg) from exc
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_path}: {exc}"
        raise DeploymentConfigError(msg) from exc

    section = _lower_keys(data).get("deployment")
    if section is None:
        msg = f"No [deployment] section in {config_path}"
        raise DeploymentConfigError(msg)

    try:
        config = DeploymentConfig.model_validate(section)
    except ValidationError as exc:
        msg = f"Invalid deployment config in {config_path}: {exc}"
        raise DeploymentConfigError(msg) from exc

    logger.debug(
        "Loaded deployment config: {} targets, {} matchers, {} order rules",
        len(config.targets),
        len(config.matchers),
        len(config.order),
    )
    return config


def parse_target_url(url: str) -> tuple[str, str | None, str]:
    """Split an ``s3://bucket?region=...&prefix=...`` URL.

    Args:
        url: Target URL from the deployment config.

    Returns:
        Tuple of (bucket, region, prefix). The prefix is normalized to end
        with ``/`` when non-empty.

    Raises:
        DeploymentConfigError: If the scheme is not ``s3`` or no bucket is given.
    """
    parsed = urlparse(url)
    if parsed.scheme != "s3":
        msg = f"Unsupported target URL scheme {parsed.scheme!r} in {url!r} (only s3:// is supported)"
        raise DeploymentConfigError(msg)
    if not parsed.netloc:
        msg = f"Target URL {url!r} has no bucket name"
        raise DeploymentConfigError(msg)

    query = parse_qs(parsed.query)
    region = query.get("region", [None])[0]
    prefix = query.get("prefix", [""])[0] or parsed.path.lstrip("/")
    return parsed.netloc, region, _normalize_prefix(prefix)


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip().lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix += "/"
    return prefix


def resolve_target(
    config: DeploymentConfig,
    name: str | None = None,
    *,
    bucket: str | None = None,
    region: str | None = None,
    prefix: str | None = None,
    cloudfront_distribution_id: str | None = None,
) -> ResolvedTarget:
    """Pick a target from the config and apply explicit overrides.

    The named target is used when ``name`` is given, otherwise the first one.
    A config with no targets is accepted only when ``bucket`` is supplied.

    Raises:
        DeploymentConfigError: If the named target does not exist or no
            target can be resolved.
    """
    target: TargetConfig | None = None
    if name is not None:
        target = next((t for t in config.targets if t.name == name), None)
        if target is None:
            available = ", ".join(t.name for t in config.targets) or "none"
            msg = f"Deployment target {name!r} not found (available: {available})"
            raise DeploymentConfigError(msg)
    elif config.targets:
        target = config.targets[0]

    if target is None:
        if not bucket:
            msg = "No deployment targets configured and no bucket override given"
            raise DeploymentConfigError(msg)
        return ResolvedTarget(
            name="default",
            bucket=bucket,
            region=region,
            prefix=_normalize_prefix(prefix or ""),
            cloudfront_distribution_id=cloudfront_distribution_id,
        )

    url_bucket, url_region, url_prefix = parse_target_url(target.url)
    return ResolvedTarget(
        name=target.name,
        bucket=bucket or url_bucket,
        region=region or url_region,
        prefix=_normalize_prefix(prefix) if prefix is not None else url_prefix,
        cloudfront_distribution_id=cloudfront_distribution_id or target.cloudfront_distribution_id,
        include=target.include,
        exclude=target.exclude,
    )
