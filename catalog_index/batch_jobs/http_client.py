"""Remote batch embedding job service over HTTP (httpx)."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from catalog_index.batch_jobs.models import JobHandle, JobState
from catalog_index.batch_jobs.settings import BatchJobSettings
from catalog_index.errors import ConfigurationUnavailable, IndexingError, TransientExternalFailure

logger = logging.getLogger(__name__)


class HttpBatchJobClient:
    """POST /v1/batchJobs to submit, GET /v1/{name} to poll.

    Submission is never retried here: a duplicate job would embed the
    catalog twice. Re-run the stage instead.
    """

    def __init__(
        self,
        settings: BatchJobSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or BatchJobSettings()
        if not self._settings.api_base:
            raise ConfigurationUnavailable("BATCH_API_BASE is required for backend=http")
        headers = {}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        self._client = httpx.AsyncClient(
            base_url=self._settings.api_base.rstrip("/"),
            headers=headers,
            timeout=self._settings.request_timeout_s,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status >= 500 or status == 429:
                raise TransientExternalFailure(f"Batch service {method} {path} -> {status}") from e
            raise IndexingError(
                f"Batch service rejected {method} {path}: {status} {e.response.text[:200]}",
                code="BAD_REQUEST",
            ) from e
        except httpx.TransportError as e:
            raise TransientExternalFailure(f"Batch service {method} {path} failed: {e}") from e
        return resp.json()

    async def submit(self, input_uri: str, output_prefix: str) -> JobHandle:
        body = {
            "displayName": f"catalog-embeddings-{int(datetime.now(timezone.utc).timestamp() * 1000)}",
            "model": self._settings.model,
            "inputConfig": {"instancesFormat": "jsonl", "uris": [input_uri]},
            "outputConfig": {"predictionsFormat": "jsonl", "outputUriPrefix": output_prefix},
        }
        logger.info(
            "Submitting batch embedding job: model=%s, input=%s, output=%s",
            self._settings.model, input_uri, output_prefix,
        )
        data = await self._request("POST", "/v1/batchJobs", json=body)
        name = data.get("name")
        if not name:
            raise IndexingError("Batch service returned no job name", code="BAD_RESPONSE")
        logger.info("Batch embedding job submitted: %s", name)
        return JobHandle(
            name=name,
            input_uri=input_uri,
            output_prefix=output_prefix,
            submitted_at=datetime.now(timezone.utc),
        )

    async def _get_job(self, job_name: str) -> dict[str, Any]:
        return await self._request("GET", f"/v1/{job_name.lstrip('/')}")

    async def get_state(self, job_name: str) -> JobState:
        data = await self._get_job(job_name)
        return JobState.from_external(data.get("state"))

    async def get_output_uri(self, job_name: str) -> str:
        data = await self._get_job(job_name)
        state = JobState.from_external(data.get("state"))
        if state is not JobState.SUCCEEDED:
            raise IndexingError(
                f"Output of {job_name} not available in state {state.value}",
                code="JOB_OUTPUT_UNAVAILABLE",
            )
        output = (data.get("outputConfig") or {}).get("outputUriPrefix") or data.get("outputUriPrefix")
        if not output:
            raise IndexingError(f"Batch job {job_name} has no output prefix", code="BAD_RESPONSE")
        return output

    async def close(self) -> None:
        await self._client.aclose()
