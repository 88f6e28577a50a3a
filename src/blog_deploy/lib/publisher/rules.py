"""Rule evaluation: matchers, upload priority, and include/exclude filters.

Matcher and order rules are ordered predicate/effect pairs evaluated
first-match-wins. Include/exclude filters are globs where ``*`` also
matches ``/`` and ``{a,b}`` selects alternatives.
"""

import mimetypes
import re
from fnmatch import fnmatchcase

from blog_deploy.lib.publisher.types import FileMetadata, MatcherRule, OrderRule

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


def find_matcher(path: str, matchers: list[MatcherRule]) -> MatcherRule | None:
    """Return the first matcher whose pattern matches ``path``."""
    for matcher in matchers:
        if matcher.matches(path):
            return matcher
    return None


def guess_content_type(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def resolve_metadata(path: str, matchers: list[MatcherRule]) -> FileMetadata:
    """Build the upload metadata for ``path`` from the first matching rule.

    Unmatched files get a guessed content type and no cache-control or
    content-encoding.
    """
    matcher = find_matcher(path, matchers)
    if matcher is None:
        return FileMetadata(content_type=guess_content_type(path))
    return FileMetadata(
        content_type=matcher.content_type or guess_content_type(path),
        cache_control=matcher.cache_control,
        content_encoding="gzip" if matcher.gzip else None,
    )


def resolve_priority(path: str, order_rules: list[OrderRule]) -> int | None:
    """Return the priority of the first order rule matching ``path``, or None."""
    for rule in order_rules:
        if rule.matches(path):
            return rule.priority
    return None


def upload_sort_key(priority: int | None, path: str) -> tuple[int, int, str]:
    """Sort key placing prioritized files first and unmatched files last."""
    if priority is None:
        return (1, 0, path)
    return (0, priority, path)


def _expand_braces(pattern: str) -> list[str]:
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(_expand_braces(f"{head}{option.strip()}{tail}"))
    return expanded


class PathFilter:
    """Include/exclude glob filter applied to both local and remote paths.

    A path passes when it matches ``include`` (if set) and does not match
    ``exclude`` (if set).

    Args:
        include: Optional glob a path must match.
        exclude: Optional glob a path must not match.
    """

    def __init__(self, include: str | None = None, exclude: str | None = None) -> None:
        self._include = _expand_braces(include) if include else None
        self._exclude = _expand_braces(exclude) if exclude else None

    def allows(self, path: str) -> bool:
        if self._include is not None and not any(fnmatchcase(path, p) for p in self._include):
            return False
        return not (self._exclude is not None and any(fnmatchcase(path, p) for p in self._exclude))
