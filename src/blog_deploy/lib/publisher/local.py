"""Local build output discovery and content hashing.

Hashes are MD5 digests of the exact bytes that will be uploaded, so they
compare directly against S3 ETags. Files whose matcher enables gzip are
hashed after deterministic compression.
"""

import gzip
import hashlib
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from blog_deploy.lib.publisher.errors import ListingError
from blog_deploy.lib.publisher.rules import PathFilter, find_matcher
from blog_deploy.lib.publisher.types import LocalFile, MatcherRule

# Read buffer size for hashing large files
_CHUNK_SIZE = 64 * 1024


def encode_body(source: Path, *, compress: bool) -> bytes:
    """Return the upload body for ``source``.

    Compression uses a fixed mtime so identical input always produces
    identical output.
    """
    data = source.read_bytes()
    if compress:
        return gzip.compress(data, mtime=0)
    return data


def _md5_file(source: Path) -> str:
    h = hashlib.md5(usedforsecurity=False)
    with source.open("rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            h.update(chunk)
    return h.hexdigest()


def hash_local_file(source: Path, *, compress: bool) -> tuple[str, int]:
    """Compute (md5 hex digest, size) of the upload body for ``source``."""
    if compress:
        body = encode_body(source, compress=True)
        return hashlib.md5(body, usedforsecurity=False).hexdigest(), len(body)
    return _md5_file(source), source.stat().st_size


def scan_local_files(
    root: Path,
    matchers: list[MatcherRule],
    path_filter: PathFilter | None = None,
) -> list[LocalFile]:
    """Walk the build output directory and describe every file.

    Args:
        root: Directory containing the rendered site.
        matchers: Matcher rules, used to decide which files are gzip-hashed.
        path_filter: Optional include/exclude filter.

    Returns:
        LocalFile entries sorted by relative path.

    Raises:
        ListingError: If ``root`` is not a readable directory.
    """
    if not root.is_dir():
        msg = f"Local site directory not found: {root}"
        raise ListingError(msg)

    files: list[LocalFile] = []
    try:
        for source in sorted(root.rglob("*")):
            if not source.is_file():
                continue
            rel_path = source.relative_to(root).as_posix()
            if path_filter is not None and not path_filter.allows(rel_path):
                logger.debug("Skipping {} (excluded by filter)", rel_path)
                continue

            matcher = find_matcher(rel_path, matchers)
            content_hash, size = hash_local_file(source, compress=bool(matcher and matcher.gzip))
            stat = source.stat()
            files.append(
                LocalFile(
                    path=rel_path,
                    content_hash=content_hash,
                    size=size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                    source=source.resolve(),
                )
            )
    except OSError as exc:
        msg = f"Failed to read local site directory {root}: {exc}"
        raise ListingError(msg) from exc

    logger.info("Found {} local files in {}", len(files), root)
    return files
