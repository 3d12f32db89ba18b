from __future__ import annotations

import argparse
import asyncio
import json
import uuid

from redis.asyncio import Redis

from podflow.config import Settings
from podflow.entitlements import Tier
from podflow.events import WorkflowStart
from podflow.models.project import FileMetadata, Project
from podflow.pipeline.factory import create_runtime
from podflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the PodFlow workflow on one audio URL.")
    parser.add_argument("--audio-url", required=True, help="Publicly fetchable audio URL")
    parser.add_argument("--tier", choices=[t.value for t in Tier], default=Tier.FREE.value)
    parser.add_argument("--project-id", default=None, help="Project id (defaults to random uuid)")
    parser.add_argument("--user-id", default="local", help="Owner user id")
    parser.add_argument(
        "--run-id",
        default=None,
        help="Reuse a run id to resume a previous run from its step journal",
    )
    parser.add_argument("--show", action="store_true", help="Print generated artifacts as JSON")
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    settings = Settings()
    setup_logging(settings, component="local")

    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    runtime = create_runtime(settings, redis)
    try:
        project_id = str(args.project_id or f"proj_{uuid.uuid4().hex}")
        project = await runtime.gateway.get_project(project_id)
        if project is None:
            file_name = str(args.audio_url).rstrip("/").rsplit("/", 1)[-1] or "audio"
            project = Project(
                id=project_id,
                user_id=str(args.user_id),
                input_url=str(args.audio_url),
                file=FileMetadata(
                    file_name=file_name,
                    file_size=0,
                    file_format=file_name.rsplit(".", 1)[-1] if "." in file_name else "",
                ),
            )
            await runtime.gateway.create_project(project)

        event = WorkflowStart(project_id=project_id, audio_ref=str(args.audio_url), tier=Tier(args.tier))
        if args.run_id:
            event.run_id = str(args.run_id)
        result = await runtime.orchestrator.run_with_retries(event)

        print(
            f"project_id={result.project_id} run_id={result.run_id} status={result.status.value} "
            f"succeeded={[n.value for n in result.succeeded]} failed={[n.value for n in result.failed]}"
        )
        if args.show:
            final = await runtime.gateway.get_project(project_id)
            if final is not None:
                print(json.dumps({"artifacts": final.artifacts, "jobErrors": final.job_errors}, indent=2))
        return 0 if result.error is None else 1
    finally:
        await runtime.close()
        await redis.aclose()


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
