"""Inspect and redrive dead-lettered jobs."""

import argparse


def add_parser(subparsers):
    parser = subparsers.add_parser("queue", help="Manage failed jobs")
    actions = parser.add_subparsers(dest="queue_command", required=True)

    failed = actions.add_parser("failed", help="List failed jobs")
    failed.add_argument("--queue", help="Only jobs from this queue")
    failed.add_argument("--limit", type=int, default=100)

    retry = actions.add_parser("retry", help="Put failed jobs back on their queue")
    retry.add_argument("id", nargs="?", help="Failed job id")
    retry.add_argument("--all", action="store_true", help="Retry every failed job")
    retry.add_argument("--queue", help="With --all, only jobs from this queue")

    forget = actions.add_parser("forget", help="Delete a failed job")
    forget.add_argument("id", help="Failed job id")

    parser.set_defaults(handler=run)
    return parser


async def run(args: argparse.Namespace, container) -> int:
    job_queue = container.job_queue

    if args.queue_command == "failed":
        jobs = await job_queue.list_failed(queue=args.queue, limit=args.limit)
        if not jobs:
            print("No failed jobs.")
            return 0
        for job in jobs:
            failed_at = job.failed_at.isoformat() if job.failed_at else "-"
            print(f"{job.id}  {job.queue}  {job.job}  attempts={job.attempts}  {failed_at}  {job.payload}")
            print(f"    {job.exception}")
        return 0

    if args.queue_command == "retry":
        if not args.id and not args.all:
            print("Provide a failed job id or --all.")
            return 1
        count = await job_queue.redrive(failed_id=args.id, queue=args.queue if args.all else None)
        print(f"{count} failed job(s) pushed back onto the queue.")
        return 0 if count or args.all else 1

    if args.queue_command == "forget":
        if await job_queue.forget(args.id):
            print(f"Failed job {args.id} deleted.")
            return 0
        print(f"No failed job matches the given ID: {args.id}")
        return 1

    return 1
