"""CLI for the batch indexing pipeline: full runs, single-stage resume, inspect, health."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from catalog_index.errors import IndexingError
from catalog_index.pipeline.factory import PipelineConfig, build_orchestrator, build_session
from catalog_index.pipeline.orchestrator import BatchIndexingOrchestrator
from catalog_index.pipeline.recorder import SqlRunRecorder

logger = logging.getLogger(__name__)


def _emit(payload: Any) -> None:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _run_with_orchestrator(
    config: PipelineConfig,
    action: Callable[[BatchIndexingOrchestrator], Awaitable[Any]],
) -> Any:
    async def run() -> Any:
        orch = build_orchestrator(config)
        try:
            return await action(orch)
        finally:
            await orch.close()

    return asyncio.run(run())


def _stage_command(args: argparse.Namespace, action) -> int:
    """Run a single stage; IndexingError becomes a JSON error and exit code 1."""
    try:
        result = _run_with_orchestrator(args.config, action)
    except IndexingError as e:
        _emit({"success": False, "error_code": e.code, "retryable": e.retryable, "error": str(e)})
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _emit(result)
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    try:
        result = _run_with_orchestrator(args.config, lambda o: o.run_full_pipeline(args.run_id))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _emit(result)
    return 0 if result.success else 1


def _cmd_export(args: argparse.Namespace) -> int:
    return _stage_command(args, lambda o: o.run_export_only(args.run_id))


def _cmd_embed(args: argparse.Namespace) -> int:
    wait = args.wait
    if not wait and args.config.batch.backend == "local":
        # Local jobs run inside this process and die with it.
        logger.warning("backend=local: waiting for the job since it cannot outlive this process")
        wait = True
    return _stage_command(args, lambda o: o.run_embedding_only(args.run_id, wait=wait))


def _cmd_job_status(args: argparse.Namespace) -> int:
    async def action(o: BatchIndexingOrchestrator) -> dict:
        state = await o.get_embedding_job_state(args.job)
        return {"job_name": args.job, "state": state.value, "terminal": state.is_terminal}

    return _stage_command(args, action)


def _cmd_transform(args: argparse.Namespace) -> int:
    return _stage_command(args, lambda o: o.run_transform_only(args.run_id, args.embeddings_uri))


def _cmd_index(args: argparse.Namespace) -> int:
    async def action(o: BatchIndexingOrchestrator) -> dict:
        resource = await o.run_index_update_only(args.run_id, complete_overwrite=not args.incremental)
        return {"run_id": args.run_id, "index_resource": resource, "complete_overwrite": not args.incremental}

    return _stage_command(args, action)


def _cmd_inspect(args: argparse.Namespace) -> int:
    recorder = SqlRunRecorder(build_session(args.config.db))
    if args.run_id:
        run = recorder.get(args.run_id)
        if run is None:
            print(f"Error: run not found: {args.run_id}", file=sys.stderr)
            return 1
        _emit(run)
        return 0
    _emit(recorder.list_recent(args.limit))
    return 0


def _cmd_health(args: argparse.Namespace) -> int:
    async def action(o: BatchIndexingOrchestrator) -> dict:
        stages = o.availability()
        reachable = await o.index_health() if stages["index"] else False
        return {"available": o.is_available(), "stages": stages, "index_reachable": reachable}

    report = _run_with_orchestrator(args.config, action)
    _emit(report)
    return 0 if report["available"] and report["index_reachable"] else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Catalog batch vector indexing pipeline")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run export -> embed -> transform -> index")
    p_run.add_argument("--run-id", default=None, help="Reuse a run id (default: mint a new one)")
    p_run.set_defaults(func=_cmd_run)

    p_export = sub.add_parser("export", help="Export the active catalog for a run")
    p_export.add_argument("--run-id", required=True)
    p_export.set_defaults(func=_cmd_export)

    p_embed = sub.add_parser("embed", help="Submit the run's content file to the batch embedding service")
    p_embed.add_argument("--run-id", required=True)
    p_embed.add_argument("--wait", action="store_true", help="Block until the job is terminal")
    p_embed.set_defaults(func=_cmd_embed)

    p_status = sub.add_parser("job-status", help="Poll a batch embedding job once")
    p_status.add_argument("--job", required=True, help="Job name returned by embed")
    p_status.set_defaults(func=_cmd_job_status)

    p_transform = sub.add_parser("transform", help="Merge metadata with embedding shards into datapoints")
    p_transform.add_argument("--run-id", required=True)
    p_transform.add_argument("--embeddings-uri", default=None, help="Shard prefix (default: the run's prefix)")
    p_transform.set_defaults(func=_cmd_transform)

    p_index = sub.add_parser("index", help="Publish the run's datapoints to the vector index")
    p_index.add_argument("--run-id", required=True)
    p_index.add_argument("--incremental", action="store_true", help="Merge by id instead of replacing")
    p_index.set_defaults(func=_cmd_index)

    p_inspect = sub.add_parser("inspect", help="Show a recorded run, or the most recent runs")
    p_inspect.add_argument("--run-id", default=None)
    p_inspect.add_argument("--limit", "-n", type=int, default=20)
    p_inspect.set_defaults(func=_cmd_inspect)

    p_health = sub.add_parser("health", help="Report which stage clients are configured")
    p_health.set_defaults(func=_cmd_health)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.config = PipelineConfig()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
