"""
Statistics backfill.

Recomputes summaries for every product that has reviews (found by sweeping
the product index) or for an explicit list of products. Used on first
adoption and to repair drift left by lost recompute events.
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from review_service.core.errors import IterationCeilingError, ReviewServiceError
from review_service.core.logger import logger

DEFAULT_CHUNK_SIZE = 100
DEFAULT_MAX_ITERATIONS = 10_000


class BackfillReport(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.failed == 0


def split_product_ids(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten repeated and comma-separated ids, dropping blanks and repeats"""
    product_ids: List[str] = []
    for value in values or []:
        for product_id in value.split(","):
            product_id = product_id.strip()
            if product_id and product_id not in product_ids:
                product_ids.append(product_id)
    return product_ids


class BackfillService:
    def __init__(
        self,
        review_repository,
        statistics_service,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        self.review_repository = review_repository
        self.statistics_service = statistics_service
        self.max_iterations = max_iterations

    async def discover_product_ids(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
        """
        Distinct product ids from a keys-only sweep of the product index.

        Raises:
            IterationCeilingError: the sweep did not end within ``max_iterations`` pages
        """
        product_ids: Dict[str, None] = {}
        cursor = None
        iteration = 0

        while True:
            iteration += 1
            page = await self.review_repository.scan_product_index(
                cursor=cursor, limit=chunk_size, keys_only=True
            )
            if not page.items:
                break
            if iteration > self.max_iterations:
                raise IterationCeilingError(
                    f"Product discovery exceeded {self.max_iterations} pages",
                    details={"productsFound": len(product_ids)},
                )

            for item in page.items:
                if item.get("product_id"):
                    product_ids[item["product_id"]] = None

            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        logger.info("Discovered products for backfill", metadata={"count": len(product_ids)})
        return list(product_ids)

    async def run(
        self,
        product_ids: Optional[Iterable[str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        queued: bool = False,
    ) -> BackfillReport:
        """
        Recompute (or, with ``queued``, schedule) statistics per product.

        An explicit ``product_ids`` list skips discovery.
        """
        targets = list(product_ids) if product_ids else await self.discover_product_ids(chunk_size)
        report = BackfillReport()

        for product_id in targets:
            if not product_id or not product_id.strip():
                continue

            logger.info("Backfilling product statistics", metadata={"productId": product_id, "queued": queued})
            try:
                if queued:
                    await self.statistics_service.queue_recalculation(product_id)
                else:
                    await self.statistics_service.calculate(product_id)
                report.succeeded += 1
            except ReviewServiceError as e:
                logger.error(
                    "Backfill failed for product",
                    error=e,
                    metadata={"productId": product_id},
                )
                report.failed += 1
                report.failures[product_id] = e.message
            report.processed += 1

        logger.info(
            "Backfill completed",
            metadata={"processed": report.processed, "succeeded": report.succeeded, "failed": report.failed},
        )
        return report
