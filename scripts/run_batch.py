"""Command-line entry point for rendering one batch of approved scripts.

The input file is JSON with ``product``, ``scripts`` and optional ``options``
keys, matching the body accepted by ``POST /api/batches``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from src.adblitz.api.batch_api import BatchCreateRequest
from src.adblitz.config import load_config
from src.adblitz.domain.models import BatchJob, BatchStatus, TaskStatus
from src.adblitz.errors import ConfigurationError
from src.adblitz.logging import configure_logging
from src.adblitz.providers.providers_factory import create_selector
from src.adblitz.services.job_service import BatchJobService


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a batch of ad scripts into videos.")
    parser.add_argument("input", type=Path, help="JSON file with product, scripts and options.")
    parser.add_argument("--model", help="Override options.video_model (sora, veo, creatify or auto).")
    return parser.parse_args(argv)


def print_update(job: BatchJob) -> None:
    done = sum(1 for task in job.tasks if task.status.is_terminal)
    print(f"[{job.status.value}] {job.progress:3d}% ({done}/{len(job.tasks)} tasks finished)")


async def run(request: BatchCreateRequest) -> BatchJob:
    service = BatchJobService(create_selector(load_config()))
    options = request.options
    if not options.product_images:
        options = options.model_copy(update={"product_images": list(request.product.images)})
    job = service.create_batch_job(request.product.product_name, request.scripts, options.video_model)
    return await service.execute_batch_job(job, request.scripts, options, print_update)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging()
    try:
        request = BatchCreateRequest.model_validate(json.loads(args.input.read_text(encoding="utf-8")))
    except (OSError, ValueError, ValidationError) as exc:
        print(f"invalid input: {exc}", file=sys.stderr)
        return 2
    if args.model:
        request.options.video_model = args.model

    try:
        job = asyncio.run(run(request))
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    for task in job.tasks:
        outcome = task.video_url if task.status is TaskStatus.COMPLETED else task.error
        print(f"{task.id}: {task.status.value} {outcome}")
    return 0 if job.status is BatchStatus.COMPLETED else 1


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
