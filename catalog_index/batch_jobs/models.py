"""Batch job state and handle."""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """Lifecycle of an external batch embedding job."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @classmethod
    def from_external(cls, raw: str | None) -> "JobState":
        """Map a provider state string (e.g. JOB_STATE_RUNNING, 'succeeded') to JobState."""
        key = (raw or "").strip().upper()
        if key.startswith("JOB_STATE_"):
            key = key[len("JOB_STATE_"):]
        state = _EXTERNAL_STATES.get(key)
        if state is None:
            logger.warning("Unknown batch job state %r; treating as PENDING", raw)
            return cls.PENDING
        return state


_TERMINAL = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED})

_EXTERNAL_STATES: dict[str, JobState] = {
    "PENDING": JobState.PENDING,
    "QUEUED": JobState.PENDING,
    "UNSPECIFIED": JobState.PENDING,
    "RUNNING": JobState.RUNNING,
    "UPDATING": JobState.RUNNING,
    "CANCELLING": JobState.RUNNING,
    "PAUSED": JobState.RUNNING,
    "SUCCEEDED": JobState.SUCCEEDED,
    "PARTIALLY_SUCCEEDED": JobState.SUCCEEDED,
    "FAILED": JobState.FAILED,
    "EXPIRED": JobState.FAILED,
    "CANCELLED": JobState.CANCELLED,
}


class JobHandle(BaseModel):
    """Reference to a submitted job. name is the provider's resource name."""

    name: str = Field(..., description="Job resource name used for polling")
    input_uri: str = Field(..., description="Content file the job embeds")
    output_prefix: str = Field(..., description="Prefix the job writes shards under")
    submitted_at: datetime = Field(..., description="Submission time (UTC)")
