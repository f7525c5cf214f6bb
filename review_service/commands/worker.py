"""Run the queue worker."""

import argparse
import asyncio
import signal

from review_service.core.logger import logger
from review_service.workers.job_worker import JobWorker
from review_service.workers.jobs import build_job_handlers


def add_parser(subparsers):
    parser = subparsers.add_parser("worker", help="Process queued statistics and cache jobs")
    parser.add_argument(
        "--queue",
        dest="queues",
        action="append",
        default=[],
        help="Queue to consume (repeatable; default: all queues)",
    )
    parser.add_argument("--once", action="store_true", help="Drain the queues and exit")
    parser.set_defaults(handler=run)
    return parser


def build_worker(container, queues=None) -> JobWorker:
    settings = container.config
    return JobWorker(
        container.job_queue,
        build_job_handlers(container),
        queues or [settings.statistics_queue, settings.cache_invalidation_queue],
        poll_interval=settings.worker_poll_interval,
    )


async def run(args: argparse.Namespace, container) -> int:
    worker = build_worker(container, args.queues)

    def signal_handler(signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        asyncio.create_task(worker.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await worker.start(once=args.once)
    return 0
