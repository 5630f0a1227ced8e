"""Ollama embed client: POST {base}/api/embed with a list of inputs."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from catalog_index.embeddings.settings import EmbedSettings
from catalog_index.errors import TransientExternalFailure

logger = logging.getLogger(__name__)


def _vectors(data: dict[str, Any]) -> list[list[float]]:
    raw = data.get("embeddings") or []
    if raw and isinstance(raw[0], (int, float)):
        raw = [raw]
    return [[float(x) for x in vec] for vec in raw]


class OllamaEmbedClient:
    """Batch text embedding. Vectors come back in input order."""

    def __init__(
        self,
        settings: EmbedSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or EmbedSettings()
        self._url = self._settings.ollama_api_base.rstrip("/") + "/api/embed"
        self._transport = transport
        self._dims_warned = False

    @property
    def model(self) -> str:
        return self._settings.ollama_model

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._settings.embed_timeout, transport=self._transport) as client:
            resp = await client.post(self._url, json=payload)
            resp.raise_for_status()
            return resp.json()

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        payload = {
            "model": self.model,
            "input": texts,
            "keep_alive": self._settings.ollama_keep_alive,
        }
        attempts = self._settings.retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                data = await self._post(payload)
                break
            except (httpx.HTTPStatusError, httpx.TransportError) as e:
                if attempt == attempts:
                    raise TransientExternalFailure(
                        f"Ollama embed failed after {attempts} attempts: {e}"
                    ) from e
                logger.warning(
                    "Embed request failed (attempt %s/%s): %s; retrying in %.1fs",
                    attempt, attempts, e, self._settings.retry_delay_s,
                )
                await asyncio.sleep(self._settings.retry_delay_s)

        vectors = _vectors(data)
        if vectors and len(vectors[0]) != self._settings.dims and not self._dims_warned:
            self._dims_warned = True
            logger.warning(
                "Model %s returned %s-dim vectors, EMBED_DIMS is %s",
                self.model, len(vectors[0]), self._settings.dims,
            )
        return vectors
