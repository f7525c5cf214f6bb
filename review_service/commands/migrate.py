"""Create the MongoDB indexes the service relies on."""

import argparse

from review_service.core.indexes import create_indexes


def add_parser(subparsers):
    parser = subparsers.add_parser("migrate", help="Create MongoDB indexes")
    parser.set_defaults(handler=run)
    return parser


async def run(args: argparse.Namespace, container) -> int:
    print("Creating indexes...")
    await create_indexes(container.db)
    print("Done.")
    return 0
