"""Publisher library: public API for static site deployment.

Provides deployment config loading, local/remote listing, transfer
planning, and plan execution against S3 with CloudFront invalidation.
"""

from blog_deploy.lib.publisher.cdn import create_cloudfront_client, invalidate
from blog_deploy.lib.publisher.deployment import (
    DeploymentConfig,
    ResolvedTarget,
    load_deployment_config,
    parse_target_url,
    resolve_target,
)
from blog_deploy.lib.publisher.errors import (
    DeleteFailedError,
    DeploymentConfigError,
    ListingError,
    PublisherError,
    TooManyDeletesError,
    UploadFailedError,
)
from blog_deploy.lib.publisher.executor import ExecutionOptions, execute_plan
from blog_deploy.lib.publisher.local import scan_local_files
from blog_deploy.lib.publisher.planner import UNBOUNDED_DELETES, compute_plan
from blog_deploy.lib.publisher.rules import PathFilter
from blog_deploy.lib.publisher.storage import (
    create_s3_client,
    delete_files,
    list_remote_files,
    put_file,
    validate_config,
)
from blog_deploy.lib.publisher.types import (
    FileMetadata,
    LocalFile,
    MatcherRule,
    OrderRule,
    PublishResult,
    RemoteFile,
    Transfer,
    TransferAction,
    TransferPlan,
    UploadReason,
)

__all__ = [
    "UNBOUNDED_DELETES",
    "DeleteFailedError",
    "DeploymentConfig",
    "DeploymentConfigError",
    "ExecutionOptions",
    "FileMetadata",
    "ListingError",
    "LocalFile",
    "MatcherRule",
    "OrderRule",
    "PathFilter",
    "PublishResult",
    "PublisherError",
    "RemoteFile",
    "ResolvedTarget",
    "TooManyDeletesError",
    "Transfer",
    "TransferAction",
    "TransferPlan",
    "UploadFailedError",
    "UploadReason",
    "compute_plan",
    "create_cloudfront_client",
    "create_s3_client",
    "delete_files",
    "execute_plan",
    "invalidate",
    "list_remote_files",
    "load_deployment_config",
    "parse_target_url",
    "put_file",
    "resolve_target",
    "scan_local_files",
    "validate_config",
]
