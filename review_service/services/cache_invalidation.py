"""
CDN cache invalidation.

``CloudFrontService`` turns review lifecycle events into path patterns and
queues them; the ``cache.invalidate`` job hands each batch to
``CloudFrontClient``, which talks to CloudFront through boto3.
"""

import asyncio
import time
from typing import Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from review_service.core.config import Config, config as default_config
from review_service.core.errors import ExternalServiceError
from review_service.core.logger import logger
from review_service.models.review import Review
from review_service.services.job_queue import MongoJobQueue
from review_service.workers.jobs import INVALIDATE_CACHE

ALL_MEDIA_PATHS = ["/reviews/*"]
ALL_API_PATHS = ["/api/reviews*", "/api/products/*/reviews*"]


def normalize_paths(paths: Iterable[str]) -> List[str]:
    """Leading slash on every path, blanks dropped, duplicates removed in order"""
    normalized = []
    for path in paths:
        if not path or not path.strip():
            continue
        path = "/" + path.strip().lstrip("/")
        if path not in normalized:
            normalized.append(path)
    return normalized


def review_api_paths(review_id: str) -> List[str]:
    return [
        f"/api/reviews/{review_id}*",
        f"/api/reviews/{review_id}/translate*",
        f"/api/reviews/{review_id}/publication*",
    ]


def review_media_paths(review_id: str) -> List[str]:
    return [f"/reviews/{review_id}/*"]


def product_api_paths(product_id: str) -> List[str]:
    return [f"/api/products/{product_id}/reviews*"]


def product_rating_paths(product_id: str) -> List[str]:
    return [f"/api/products/{product_id}/rating*"]


class CloudFrontClient:
    """Thin async wrapper over the boto3 CloudFront client."""

    def __init__(self, settings: Config = None, client=None):
        self.settings = settings or default_config
        self.distribution_id = self.settings.cloudfront_distribution_id
        self._client = client

    def _get_client(self):
        if self._client is None:
            settings = self.settings
            self._client = boto3.client(
                "cloudfront",
                region_name=settings.cloudfront_region or settings.aws_default_region,
                aws_access_key_id=settings.cloudfront_key or settings.aws_access_key_id,
                aws_secret_access_key=settings.cloudfront_secret or settings.aws_secret_access_key,
            )
        return self._client

    def caller_reference(self) -> str:
        return f"{self.settings.cloudfront_caller_reference_prefix}-{time.time_ns()}"

    async def create_invalidation(self, paths: Iterable[str]) -> Optional[str]:
        """
        Submit one invalidation batch.

        Returns:
            The CloudFront invalidation id, or None when nothing was sent

        Raises:
            ExternalServiceError: CloudFront rejected the request or was unreachable
        """
        paths = normalize_paths(paths)
        if not paths:
            return None
        if not self.distribution_id:
            logger.warning(
                "CloudFront distribution ID not configured, skipping invalidation",
                metadata={"paths": paths},
            )
            return None

        caller_reference = self.caller_reference()
        try:
            response = await asyncio.to_thread(
                self._get_client().create_invalidation,
                DistributionId=self.distribution_id,
                InvalidationBatch={
                    "Paths": {"Quantity": len(paths), "Items": paths},
                    "CallerReference": caller_reference,
                },
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "CloudFront invalidation failed",
                error=e,
                metadata={"paths": paths, "distributionId": self.distribution_id},
            )
            raise ExternalServiceError(
                "CloudFront invalidation failed",
                details={"paths": paths, "reason": str(e)},
            )

        invalidation_id = response.get("Invalidation", {}).get("Id")
        logger.info(
            "CloudFront invalidation created",
            metadata={
                "invalidationId": invalidation_id,
                "callerReference": caller_reference,
                "paths": paths,
            },
        )
        return invalidation_id


class CloudFrontService:
    """Path fan-out for review events. Queued by default, synchronous on request."""

    def __init__(self, queue: MongoJobQueue, client: CloudFrontClient):
        self.queue = queue
        self.client = client

    async def invalidate(self, paths: Iterable[str], sync: bool = False) -> Optional[str]:
        paths = normalize_paths(paths)
        if not paths:
            return None
        if sync:
            return await self.client.create_invalidation(paths)
        return await self.queue.enqueue(INVALIDATE_CACHE, {"paths": paths})

    async def invalidate_review_created(self, review: Review, sync: bool = False):
        return await self.invalidate(product_api_paths(review.product_id), sync)

    async def invalidate_review_updated(self, review: Review, sync: bool = False):
        paths = review_api_paths(review.review_id) + product_api_paths(review.product_id)
        return await self.invalidate(paths, sync)

    async def invalidate_review_deleted(self, review: Review, sync: bool = False):
        paths = review_api_paths(review.review_id) + product_api_paths(review.product_id)
        paths += [item.path for item in review.media]
        return await self.invalidate(paths, sync)

    async def invalidate_review(self, review_id: str, sync: bool = False):
        return await self.invalidate(review_api_paths(review_id), sync)

    async def invalidate_review_media(self, review_id: str, sync: bool = False):
        return await self.invalidate(review_media_paths(review_id), sync)

    async def invalidate_product(self, product_id: str, sync: bool = False):
        return await self.invalidate(product_api_paths(product_id), sync)

    async def invalidate_statistics(self, product_id: str, sync: bool = False):
        return await self.invalidate(product_api_paths(product_id) + product_rating_paths(product_id), sync)

    async def invalidate_media(self, paths: Iterable[str], sync: bool = False):
        return await self.invalidate(paths, sync)

    async def invalidate_all_media(self, sync: bool = False):
        return await self.invalidate(ALL_MEDIA_PATHS, sync)

    async def invalidate_all_api(self, sync: bool = False):
        return await self.invalidate(ALL_API_PATHS, sync)

    async def invalidate_all(self, sync: bool = False):
        return await self.invalidate(ALL_MEDIA_PATHS + ALL_API_PATHS, sync)
