"""Errors raised by the catalog sync services."""


class SyncError(Exception):
    """Base class for catalog sync errors."""
    pass


class PayloadValidationError(SyncError):
    """A batch item is malformed (bad field, non-JSON topics, ...).

    Raised before any write. The item is skipped and counted; the batch goes on.
    """

    def __init__(self, message: str, repo_id: int | None = None):
        super().__init__(message)
        self.repo_id = repo_id


class ConflictError(SyncError):
    """Another repository id already owns this full name (ignoring case).

    The item is skipped and counted; the batch goes on.
    """

    def __init__(self, full_name: str, repo_id: int, existing_id: int):
        super().__init__(
            f"full_name {full_name!r} for repo {repo_id} is already used by repo {existing_id}"
        )
        self.full_name = full_name
        self.repo_id = repo_id
        self.existing_id = existing_id


class DependencyError(SyncError):
    """The embedding or annotation collaborator kept failing after retries.

    Core repository fields still commit; the repository is flagged for
    re-indexing on a later run.
    """
    pass


class FatalError(SyncError):
    """Storage is unavailable. Aborts the rest of the batch."""
    pass


class SyncJobStateError(SyncError):
    """Illegal sync job transition (e.g. closing a terminal job)."""
    pass


class RepositoryNotFoundError(SyncError):
    """No repository row for the given id."""

    def __init__(self, repo_id: int):
        super().__init__(f"Repository not found: {repo_id}")
        self.repo_id = repo_id
