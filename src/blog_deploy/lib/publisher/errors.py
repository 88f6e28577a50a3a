"""Exceptions raised by the publisher library."""


class PublisherError(Exception):
    """Base class for all publisher failures."""


class DeploymentConfigError(PublisherError):
    """Raised when the deployment configuration is missing or invalid."""


class ListingError(PublisherError):
    """Raised when the local or remote file set cannot be listed.

    Always raised before any mutation is attempted.
    """


class TooManyDeletesError(PublisherError):
    """Raised when a plan would delete more files than allowed.

    Args:
        count: Number of remote files scheduled for deletion.
        limit: Configured maximum number of deletes.
    """

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(
            f"Refusing to delete {count} files (max deletes is {limit}). "
            "Raise --max-deletes or pass -1 to disable the limit."
        )


class UploadFailedError(PublisherError):
    """Raised when an upload still fails after all retry attempts.

    Files uploaded before the failure are not rolled back.

    Args:
        path: Relative path of the file that failed.
        cause: Last exception raised for that file.
        uploaded: Paths that were uploaded successfully before aborting.
    """

    def __init__(self, path: str, cause: BaseException, uploaded: list[str]) -> None:
        self.path = path
        self.cause = cause
        self.uploaded = uploaded
        super().__init__(f"Upload of {path} failed: {cause} ({len(uploaded)} files uploaded before failure)")


class DeleteFailedError(PublisherError):
    """Raised when the bucket rejects a batch delete.

    Args:
        paths: Keys that could not be deleted.
        cause: Error message or exception reported by storage.
        deleted: Keys that were deleted before the failure.
    """

    def __init__(self, paths: list[str], cause: object, deleted: list[str] | None = None) -> None:
        self.paths = paths
        self.cause = cause
        self.deleted = deleted or []
        super().__init__(
            f"Failed to delete {len(paths)} files: {cause} ({len(self.deleted)} files deleted before failure)"
        )
