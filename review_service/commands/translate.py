"""Translate reviews that are missing one of the supported languages."""

import argparse

STATUS_CHOICES = ["published", "pending", "rejected", "all"]


def add_parser(subparsers):
    parser = subparsers.add_parser("translate", help="Translate reviews to all supported languages")
    parser.add_argument("--limit", type=int, default=100, help="Number of reviews to process")
    parser.add_argument(
        "--status",
        choices=STATUS_CHOICES,
        default="published",
        help="Filter by publication status",
    )
    parser.set_defaults(handler=run)
    return parser


async def run(args: argparse.Namespace, container) -> int:
    print(f"Starting to translate reviews (limit: {args.limit}, status: {args.status})...")
    status = None if args.status == "all" else args.status

    translated, errors = await container.translation_service.batch_translate(limit=args.limit, status=status)

    if translated == 0 and errors == 0:
        print("No reviews found that need translation.")
        return 0

    print(f"Translation completed: {translated} reviews translated, {errors} errors.")
    return 0
