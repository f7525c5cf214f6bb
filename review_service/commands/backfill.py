"""Recalculate rating statistics for existing products."""

import argparse

from review_service.services.backfill_service import DEFAULT_CHUNK_SIZE, split_product_ids


def add_parser(subparsers):
    parser = subparsers.add_parser("backfill", help="Backfill product review statistics")
    parser.add_argument(
        "--product-id",
        "--product_id",
        dest="product_ids",
        action="append",
        default=[],
        help="Product id(s) to backfill; repeat the flag or separate with commas (default: all products)",
    )
    parser.add_argument(
        "--chunk-size",
        "--chunk_size",
        dest="chunk_size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="Reviews fetched per page while discovering products",
    )
    parser.add_argument(
        "--queued",
        action="store_true",
        help="Queue a recompute per product instead of running it inline",
    )
    parser.set_defaults(handler=run)
    return parser


async def run(args: argparse.Namespace, container) -> int:
    product_ids = split_product_ids(args.product_ids)
    if product_ids:
        print(f"Starting backfill for specific product IDs: {', '.join(product_ids)}")
    else:
        print(f"Starting backfill for all products (chunk size: {args.chunk_size})...")

    report = await container.backfill_service.run(
        product_ids=product_ids or None,
        chunk_size=args.chunk_size,
        queued=args.queued,
    )

    if report.processed == 0 and not product_ids:
        print("No product IDs found to process.")
        return 0

    print("Backfill process completed.")
    print(f"Total Product IDs attempted: {report.processed}")
    print(f"Successfully processed: {report.succeeded}")
    print(f"Failed/Errors: {report.failed}")
    for product_id, reason in report.failures.items():
        print(f"  {product_id}: {reason}")

    return 0 if report.ok else 1
