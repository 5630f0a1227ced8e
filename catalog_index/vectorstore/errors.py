"""Vector store exceptions."""
from catalog_index.errors import TransientExternalFailure


class VectorStoreError(TransientExternalFailure):
    """Qdrant call failed after retries."""

    def __init__(self, message: str = "Vector store call failed", **kwargs: object) -> None:
        kwargs.setdefault("code", "VECTOR_STORE_ERROR")
        super().__init__(message, **kwargs)


class VectorSchemaMismatchError(VectorStoreError):
    """Raised when collection vector size or distance does not match expectations.

    Incremental updates cannot fix this; run a complete overwrite.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="VECTOR_SCHEMA_MISMATCH")
        self.retryable = False
