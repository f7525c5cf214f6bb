"""Invalidate CloudFront cache for review media and API responses."""

import argparse

from review_service.core.errors import ReviewServiceError


def add_parser(subparsers):
    parser = subparsers.add_parser("invalidate", help="Invalidate CloudFront cache")
    parser.add_argument("paths", nargs="*", help="Specific paths to invalidate")
    parser.add_argument("--all", action="store_true", help="Invalidate all review media and API responses")
    parser.add_argument("--media", action="store_true", help="Invalidate all review media")
    parser.add_argument("--api", action="store_true", help="Invalidate all review API responses")
    parser.add_argument("--review", metavar="ID", help="Invalidate media and API cache for one review")
    parser.add_argument("--product", metavar="ID", help="Invalidate review API cache for one product")
    parser.add_argument("--sync", action="store_true", help="Call CloudFront now instead of queueing a job")
    parser.set_defaults(handler=run)
    return parser


async def run(args: argparse.Namespace, container) -> int:
    cache = container.cache_invalidator
    sync = args.sync
    done = "completed" if sync else "queued"

    try:
        if args.all:
            print("Invalidating cache for all review media and API responses...")
            await cache.invalidate_all(sync=sync)
        elif args.media:
            print("Invalidating cache for all review media...")
            await cache.invalidate_all_media(sync=sync)
        elif args.api:
            print("Invalidating cache for all API responses...")
            await cache.invalidate_all_api(sync=sync)
        elif args.review:
            print(f"Invalidating cache for review ID: {args.review}...")
            await cache.invalidate_review_media(args.review, sync=sync)
            await cache.invalidate_review(args.review, sync=sync)
        elif args.product:
            print(f"Invalidating API cache for product ID: {args.product}...")
            await cache.invalidate_product(args.product, sync=sync)
        elif args.paths:
            print("Invalidating cache for specified paths...")
            await cache.invalidate(args.paths, sync=sync)
        else:
            print("No invalidation option specified. Use --all, --api, --media, --review=ID, "
                  "--product=ID, or provide specific paths.")
            return 1
    except ReviewServiceError as e:
        print(f"Invalidation failed: {e.message}")
        return 1

    print(f"Invalidation {done} successfully.")
    return 0
