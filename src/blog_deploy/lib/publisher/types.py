"""Publisher data types for static site deployment.

Dataclasses representing local and remote files, matcher and order rules,
the transfer plan, and the result of a deploy run.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from itertools import groupby
from pathlib import Path


class TransferAction(StrEnum):
    """Operation a transfer performs against the bucket."""

    UPLOAD = "upload"
    DELETE = "delete"


class UploadReason(StrEnum):
    """Why a local file was scheduled for upload."""

    NEW = "not found at destination"
    SIZE = "size differs"
    HASH = "content hash differs"
    HASH_MISSING = "remote hash missing"
    FORCED = "forced"


@dataclass(frozen=True)
class LocalFile:
    """A file discovered in the local build output.

    Attributes:
        path: POSIX path relative to the output directory.
        content_hash: Hex MD5 of the upload body (after gzip when compressed).
        size: Size of the upload body in bytes.
        modified_at: Filesystem modification time.
        source: Absolute path of the file on disk.
    """

    path: str
    content_hash: str
    size: int
    modified_at: datetime
    source: Path


@dataclass(frozen=True)
class RemoteFile:
    """An object listed in the target bucket.

    ``content_hash`` is None when the ETag is not a plain MD5 (multipart).
    """

    path: str
    content_hash: str | None
    size: int


@dataclass(frozen=True)
class MatcherRule:
    """Cache and encoding policy applied to paths matching ``pattern``."""

    pattern: re.Pattern[str]
    cache_control: str | None = None
    content_type: str | None = None
    gzip: bool = False
    force: bool = False

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None


@dataclass(frozen=True)
class OrderRule:
    """Upload sequencing rule; lower priority values upload first."""

    pattern: re.Pattern[str]
    priority: int

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None


@dataclass(frozen=True)
class FileMetadata:
    """Object metadata attached to an upload."""

    content_type: str
    cache_control: str | None = None
    content_encoding: str | None = None

    @property
    def gzip(self) -> bool:
        return self.content_encoding == "gzip"


@dataclass(frozen=True)
class Transfer:
    """A single operation in a transfer plan."""

    action: TransferAction
    path: str
    metadata: FileMetadata | None = None
    reason: UploadReason | None = None
    priority: int | None = None
    local: LocalFile | None = None


@dataclass(frozen=True)
class TransferPlan:
    """Ordered, immutable set of operations for one deploy run."""

    uploads: tuple[Transfer, ...] = ()
    deletes: tuple[Transfer, ...] = ()
    unchanged: int = 0

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        """Uploads in priority order followed by deletes."""
        return self.uploads + self.deletes

    @property
    def changed_paths(self) -> list[str]:
        return [t.path for t in self.transfers]

    @property
    def is_empty(self) -> bool:
        return not self.uploads and not self.deletes

    def upload_groups(self) -> Iterator[tuple[int | None, list[Transfer]]]:
        """Yield uploads grouped by priority, in upload order."""
        for priority, group in groupby(self.uploads, key=lambda t: t.priority):
            yield priority, list(group)


@dataclass
class PublishResult:
    """Result of a deploy run."""

    uploaded: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    unchanged: int = 0
    bytes_uploaded: int = 0
    invalidation_id: str | None = None
    duration_seconds: float = 0.0
    dry_run: bool = False
