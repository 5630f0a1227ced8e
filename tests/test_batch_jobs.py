"""Batch job state mapping, the HTTP job client and the in-process backend."""
import asyncio
import json

import httpx
import pytest

from catalog_index.batch_jobs import build_batch_embedding_service
from catalog_index.batch_jobs.http_client import HttpBatchJobClient
from catalog_index.batch_jobs.local import LocalBatchEmbeddingService
from catalog_index.batch_jobs.models import JobState
from catalog_index.batch_jobs.settings import BatchJobSettings
from catalog_index.batch_jobs.waiter import wait_for_completion
from catalog_index.embeddings.ollama import OllamaEmbedClient
from catalog_index.embeddings.settings import EmbedSettings
from catalog_index.errors import ConfigurationUnavailable, IndexingError, TransientExternalFailure

from conftest import object_uri


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("JOB_STATE_SUCCEEDED", JobState.SUCCEEDED),
        ("succeeded", JobState.SUCCEEDED),
        ("JOB_STATE_RUNNING", JobState.RUNNING),
        ("JOB_STATE_QUEUED", JobState.PENDING),
        ("JOB_STATE_FAILED", JobState.FAILED),
        ("JOB_STATE_EXPIRED", JobState.FAILED),
        ("JOB_STATE_CANCELLED", JobState.CANCELLED),
        ("something-new", JobState.PENDING),
        (None, JobState.PENDING),
    ],
)
def test_job_state_from_external(raw, expected) -> None:
    assert JobState.from_external(raw) is expected


def test_terminal_states() -> None:
    assert {s for s in JobState if s.is_terminal} == {JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED}


# --- HTTP client ---


def _http_client(handler) -> HttpBatchJobClient:
    settings = BatchJobSettings(backend="http", api_base="https://batch.example.test", api_key="k-1", model="emb-1")
    return HttpBatchJobClient(settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_submit_posts_job_and_returns_handle() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"name": "batchJobs/42", "state": "JOB_STATE_PENDING"})

    client = _http_client(handler)
    handle = await client.submit("file://b/input/r/products.jsonl", "file://b/embeddings/r/")
    await client.close()

    assert handle.name == "batchJobs/42"
    assert handle.output_prefix == "file://b/embeddings/r/"
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/batchJobs"
    assert request.headers["Authorization"] == "Bearer k-1"
    body = json.loads(request.content)
    assert body["model"] == "emb-1"
    assert body["inputConfig"]["uris"] == ["file://b/input/r/products.jsonl"]
    assert body["outputConfig"]["outputUriPrefix"] == "file://b/embeddings/r/"


@pytest.mark.asyncio
async def test_http_state_and_output_uri() -> None:
    states = iter(["JOB_STATE_RUNNING", "JOB_STATE_SUCCEEDED"])

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/batchJobs/42"
        return httpx.Response(200, json={
            "name": "batchJobs/42",
            "state": next(states),
            "outputConfig": {"outputUriPrefix": "file://b/embeddings/r/prediction-model-1/"},
        })

    client = _http_client(handler)
    with pytest.raises(IndexingError) as exc_info:
        await client.get_output_uri("batchJobs/42")
    assert exc_info.value.code == "JOB_OUTPUT_UNAVAILABLE"
    assert await client.get_output_uri("batchJobs/42") == "file://b/embeddings/r/prediction-model-1/"
    await client.close()


@pytest.mark.asyncio
async def test_http_server_errors_are_transient() -> None:
    client = _http_client(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(TransientExternalFailure) as exc_info:
        await client.get_state("batchJobs/42")
    assert exc_info.value.retryable is True
    await client.close()


@pytest.mark.asyncio
async def test_http_client_errors_are_not_retryable() -> None:
    client = _http_client(lambda request: httpx.Response(404, text="no such job"))
    with pytest.raises(IndexingError) as exc_info:
        await client.get_state("batchJobs/404")
    assert exc_info.value.code == "BAD_REQUEST"
    assert exc_info.value.retryable is False
    await client.close()


def test_http_client_requires_base_url() -> None:
    with pytest.raises(ConfigurationUnavailable):
        HttpBatchJobClient(BatchJobSettings(backend="http", api_base=""))


def test_backend_selection(store) -> None:
    assert build_batch_embedding_service(BatchJobSettings(backend="http", api_base=""), store) is None
    assert build_batch_embedding_service(BatchJobSettings(backend="local"), None) is None
    assert isinstance(
        build_batch_embedding_service(BatchJobSettings(backend="local"), store),
        LocalBatchEmbeddingService,
    )


# --- in-process backend ---


def _ollama_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"embeddings": [[float(len(t)), 1.0] for t in body["input"]]})


def _local_service(store) -> LocalBatchEmbeddingService:
    embed_settings = EmbedSettings(request_batch_size=2)
    embed = OllamaEmbedClient(embed_settings, transport=httpx.MockTransport(_ollama_handler))
    return LocalBatchEmbeddingService(
        store,
        embed_client=embed,
        settings=BatchJobSettings(backend="local", shard_size=2),
        embed_settings=embed_settings,
    )


@pytest.mark.asyncio
async def test_local_job_writes_aligned_shards(store) -> None:
    content = object_uri("input", "r1", "products.jsonl")
    store.put_text(content, '{"content":"a"}\n{"content":"bbb"}\nnot json\n{"content":"cc"}\n')
    service = _local_service(store)

    handle = await service.submit(content, object_uri("embeddings", "r1"))
    state = await wait_for_completion(service, handle.name, 0.01, 5.0)

    assert state is JobState.SUCCEEDED
    prefix = await service.get_output_uri(handle.name)
    assert prefix == object_uri("embeddings", "r1") + "/"
    shards = sorted(store.list_prefix(prefix))
    assert shards == [prefix + "prediction-00000.jsonl", prefix + "prediction-00001.jsonl"]
    records = []
    for shard in shards:
        with store.open_reader(shard) as fh:
            records.extend(json.loads(line) for line in fh)
    assert [r["predictions"] for r in records] == [
        [{"embeddings": {"values": [1.0, 1.0]}}],
        [{"embeddings": {"values": [3.0, 1.0]}}],
        [],
        [{"embeddings": {"values": [2.0, 1.0]}}],
    ]
    assert records[2]["status"] == "invalid instance"
    await service.close()


@pytest.mark.asyncio
async def test_local_job_missing_input_fails(store) -> None:
    service = _local_service(store)
    handle = await service.submit(object_uri("input", "none", "products.jsonl"), object_uri("embeddings", "none"))
    state = await wait_for_completion(service, handle.name, 0.01, 5.0)
    assert state is JobState.FAILED
    with pytest.raises(IndexingError):
        await service.get_output_uri(handle.name)


@pytest.mark.asyncio
async def test_local_unknown_job(store) -> None:
    service = _local_service(store)
    with pytest.raises(IndexingError) as exc_info:
        await service.get_state("local-batch-jobs/missing")
    assert exc_info.value.code == "JOB_NOT_FOUND"


@pytest.mark.asyncio
async def test_local_close_cancels_running_job(store) -> None:
    content = object_uri("input", "slow", "products.jsonl")
    store.put_text(content, '{"content":"a"}\n')
    gate = asyncio.Event()

    async def blocked_handler(request: httpx.Request) -> httpx.Response:
        await gate.wait()
        return _ollama_handler(request)

    embed_settings = EmbedSettings()
    service = LocalBatchEmbeddingService(
        store,
        embed_client=OllamaEmbedClient(embed_settings, transport=httpx.MockTransport(blocked_handler)),
        embed_settings=embed_settings,
    )
    handle = await service.submit(content, object_uri("embeddings", "slow"))
    await asyncio.sleep(0.01)
    await service.close()

    assert await service.get_state(handle.name) is JobState.CANCELLED
    assert store.list_prefix(object_uri("embeddings", "slow") + "/") == []


@pytest.mark.asyncio
async def test_local_service_forgets_oldest_finished_jobs(store) -> None:
    embed_settings = EmbedSettings()
    service = LocalBatchEmbeddingService(
        store,
        embed_client=OllamaEmbedClient(embed_settings, transport=httpx.MockTransport(_ollama_handler)),
        settings=BatchJobSettings(backend="local", retained_jobs=1),
        embed_settings=embed_settings,
    )
    content = object_uri("input", "r1", "products.jsonl")
    store.put_text(content, '{"content":"a"}\n')

    first = await service.submit(content, object_uri("embeddings", "first"))
    assert await wait_for_completion(service, first.name, 0.01, 5.0) is JobState.SUCCEEDED
    second = await service.submit(content, object_uri("embeddings", "second"))
    assert await wait_for_completion(service, second.name, 0.01, 5.0) is JobState.SUCCEEDED

    with pytest.raises(IndexingError) as exc_info:
        await service.get_state(first.name)
    assert exc_info.value.code == "JOB_NOT_FOUND"
    assert await service.get_output_uri(second.name) == object_uri("embeddings", "second") + "/"
    await service.close()
