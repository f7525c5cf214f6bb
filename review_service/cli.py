"""Review service management CLI.

Usage:
    review-service backfill [--product-id ID ...] [--chunk-size N] [--queued]
    review-service invalidate [paths ...] [--all | --media | --api | --review ID | --product ID] [--sync]
    review-service translate [--limit N] [--status STATUS]
    review-service worker [--queue NAME ...] [--once]
    review-service queue failed | retry [ID | --all] | forget ID
    review-service migrate
    review-service serve
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from review_service.commands import backfill, invalidate, migrate, queue, translate, worker
from review_service.core.config import config
from review_service.db.mongodb import close_mongo_connection, connect_to_mongo
from review_service.dependencies.container import build_container

COMMANDS = (backfill, invalidate, translate, worker, queue, migrate)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="review-service", description="Product review service management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command in COMMANDS:
        command.add_parser(subparsers)
    subparsers.add_parser("serve", help="Run the HTTP API")
    return parser


async def execute(args: argparse.Namespace) -> int:
    db = await connect_to_mongo(config)
    try:
        container = build_container(db, config)
        return await args.handler(args, container)
    finally:
        await close_mongo_connection()


def main(argv=None):
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        from review_service.main import run
        run()
        return

    sys.exit(asyncio.run(execute(args)))


if __name__ == "__main__":
    main()
