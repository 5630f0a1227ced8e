"""Error taxonomy for the indexing pipeline. Codes are stable for run records and CLI output."""
from __future__ import annotations


class IndexingError(Exception):
    """Base for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "INDEXING_ERROR",
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class ConfigurationUnavailable(IndexingError):
    """A required external client could not be built. Surfaced as 'service unavailable'."""

    def __init__(self, message: str = "Required client not configured", **kwargs: object) -> None:
        kwargs.setdefault("code", "CONFIG_UNAVAILABLE")
        super().__init__(message, retryable=False, **kwargs)


class StorageUnavailable(ConfigurationUnavailable):
    """No durable object store is configured."""

    def __init__(self, message: str = "Object storage not configured", **kwargs: object) -> None:
        super().__init__(message, code="STORAGE_UNAVAILABLE", **kwargs)


class TransientExternalFailure(IndexingError):
    """Network or timeout error against storage, embedding or index services. Retry the stage."""

    def __init__(self, message: str = "External service call failed", **kwargs: object) -> None:
        kwargs.setdefault("code", "TRANSIENT_EXTERNAL")
        super().__init__(message, retryable=True, **kwargs)


class JobTimeout(IndexingError):
    """Embedding job did not reach a terminal state before the deadline."""

    def __init__(self, job_name: str, timeout_s: float, last_state: object = None) -> None:
        super().__init__(
            f"Batch job {job_name} not finished after {timeout_s:.0f}s (last state: {last_state})",
            code="JOB_TIMEOUT",
            retryable=True,
        )
        self.job_name = job_name
        self.timeout_s = timeout_s
        self.last_state = last_state


class JobFailed(IndexingError):
    """Embedding job reached a terminal state other than SUCCEEDED."""

    def __init__(self, job_name: str, state: object) -> None:
        super().__init__(
            f"Batch embedding job {job_name} finished with state: {state}",
            code="JOB_FAILED",
        )
        self.job_name = job_name
        self.state = state


class RecordLevelSkip(IndexingError):
    """One catalog item or merge record could not be processed. Counted, never escalated."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        super().__init__(message, code="RECORD_SKIPPED")
        self.position = position


class ObjectNotFound(IndexingError):
    """A storage object the stage needs does not exist."""

    def __init__(self, uri: str) -> None:
        super().__init__(f"Object not found: {uri}", code="OBJECT_NOT_FOUND")
        self.uri = uri


class EmptyDatasetError(IndexingError):
    """Refusing to replace the whole index with zero datapoints."""

    def __init__(self, message: str = "No datapoints to publish", **kwargs: object) -> None:
        super().__init__(message, code="EMPTY_DATASET", **kwargs)
