"""
Job definitions and their handlers.

Each job type has a static ``JobSpec`` (queue, attempts, backoff). Handlers
are built against a service container so the worker process and the tests
can wire in their own services.
"""

from typing import Any, Awaitable, Callable, Dict

from review_service.core.config import config
from review_service.core.errors import ConfigurationError, IterationCeilingError
from review_service.services.job_queue import JobSpec

JobHandler = Callable[[Dict[str, Any]], Awaitable[Any]]

RECOMPUTE_STATISTICS = JobSpec(
    name="statistics.recompute",
    queue=config.statistics_queue,
    max_attempts=3,
    backoff=[60, 180, 300],
)

INVALIDATE_CACHE = JobSpec(
    name="cache.invalidate",
    queue=config.cache_invalidation_queue,
    max_attempts=3,
    backoff=[30, 60, 120],
)

JOB_SPECS = {spec.name: spec for spec in (RECOMPUTE_STATISTICS, INVALIDATE_CACHE)}

# Structural failures: retrying cannot help
NON_RETRYABLE_ERRORS = (IterationCeilingError, ConfigurationError)


def build_job_handlers(container) -> Dict[str, JobHandler]:
    """Map job names to coroutines taking the job payload"""

    async def recompute_statistics(payload: Dict[str, Any]):
        return await container.statistics_service.calculate(payload["product_id"])

    async def invalidate_cache(payload: Dict[str, Any]):
        return await container.cloudfront_client.create_invalidation(payload["paths"])

    return {
        RECOMPUTE_STATISTICS.name: recompute_statistics,
        INVALIDATE_CACHE.name: invalidate_cache,
    }
