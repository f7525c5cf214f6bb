"""Shared test fixtures"""
from datetime import datetime, timedelta, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest

from review_service.models.review import new_review
from review_service.repositories.review_repository import ReviewPage
from review_service.services.review_events import ReviewEventProducer
from review_service.services.statistics_service import StatisticsService


class InMemoryReviewRepository:
    """
    Review store over a dict with the same keyset pagination as the MongoDB
    repository. Counts page reads so tests can check how a scan paged.
    """

    def __init__(self):
        self.documents = {}
        self.page_reads = 0
        self.scan_calls = 0

    def add(self, review):
        self.documents[review.review_id] = review.to_document()
        return review

    def add_document(self, document):
        self.documents[document["_id"]] = dict(document)

    @staticmethod
    def _matches(document, filters):
        return all(document.get(field) == value for field, value in (filters or {}).items() if value is not None)

    @staticmethod
    def _page(items, limit, cursor_of):
        page = items[:limit]
        next_cursor = cursor_of(page[-1]) if len(page) >= limit else None
        return ReviewPage(items=[dict(item) for item in page], next_cursor=next_cursor)

    async def _index_query(self, attribute, value, cursor, limit, filters):
        self.page_reads += 1
        items = sorted(
            (d for d in self.documents.values() if d.get(attribute) == value and self._matches(d, filters)),
            key=lambda d: d["_id"],
        )
        if cursor:
            items = [d for d in items if d["_id"] > cursor["review_id"]]
        return self._page(items, limit, lambda last: {attribute: last[attribute], "review_id": last["_id"]})

    async def query_by_product(self, product_id, cursor=None, limit=100, filters=None):
        return await self._index_query("product_id", product_id, cursor, limit, filters)

    async def query_by_status(self, status, cursor=None, limit=100, filters=None):
        return await self._index_query("publication_status", status, cursor, limit, filters)

    async def query_by_user(self, user_id, cursor=None, limit=100, filters=None):
        return await self._index_query("user_id", user_id, cursor, limit, filters)

    async def scan_product_index(self, cursor=None, limit=100, filters=None, keys_only=False):
        self.scan_calls += 1
        self.page_reads += 1
        items = sorted(
            (d for d in self.documents.values() if self._matches(d, filters)),
            key=lambda d: (d["product_id"], d["_id"]),
        )
        if cursor:
            after = (cursor["product_id"], cursor["review_id"])
            items = [d for d in items if (d["product_id"], d["_id"]) > after]
        if keys_only:
            items = [{"_id": d["_id"], "product_id": d["product_id"]} for d in items]
        return self._page(items, limit, lambda last: {"product_id": last["product_id"], "review_id": last["_id"]})

    async def put(self, review):
        self.documents[review.review_id] = review.to_document()
        return review

    async def get(self, review_id):
        from review_service.models.review import Review
        document = self.documents.get(review_id)
        return Review.from_document(document) if document else None

    async def delete(self, review_id):
        return self.documents.pop(review_id, None) is not None

    async def count_by_status(self, status, limit=None):
        count = sum(1 for d in self.documents.values() if d.get("publication_status") == status)
        return min(count, limit) if limit else count

    async def find_needing_translation(self, limit=100, status=None, after_review_id=None):
        from review_service.models.review import Review
        reviews = []
        for document in sorted(self.documents.values(), key=lambda d: d["_id"]):
            if status and document.get("publication_status") != status:
                continue
            if document.get("review_en") and document.get("review_ar"):
                continue
            reviews.append(Review.from_document(document))
        return reviews[:limit]


class InMemoryStatisticsRepository:
    """Statistics store keeping the newest ``last_calculated_at`` per product."""

    def __init__(self):
        self.records = {}
        self.writes = []

    async def get(self, product_id):
        return self.records.get(product_id)

    async def upsert(self, statistics):
        self.writes.append(statistics)
        current = self.records.get(statistics.product_id)
        if current is not None and current.last_calculated_at > statistics.last_calculated_at:
            return False
        self.records[statistics.product_id] = statistics
        return True

    async def bulk_get(self, product_ids):
        return {pid: self.records[pid] for pid in product_ids if pid in self.records}


class RecordingJobQueue:
    """Job queue double that keeps every enqueue call."""

    def __init__(self):
        self.jobs = []

    async def enqueue(self, spec, payload, unique_key=None, delay=0):
        self.jobs.append({"spec": spec, "payload": payload, "unique_key": unique_key, "delay": delay})
        return f"job-{len(self.jobs)}"

    def by_name(self, name):
        return [job for job in self.jobs if job["spec"].name == name]

    def visibility_timeout(self, queue):
        return 60


@pytest.fixture
def review_repository():
    return InMemoryReviewRepository()


@pytest.fixture
def statistics_repository():
    return InMemoryStatisticsRepository()


@pytest.fixture
def job_queue():
    return RecordingJobQueue()


@pytest.fixture
def cache_invalidator():
    invalidator = MagicMock()
    for name in (
        "invalidate", "invalidate_review_created", "invalidate_review_updated",
        "invalidate_review_deleted", "invalidate_review", "invalidate_review_media",
        "invalidate_product", "invalidate_statistics", "invalidate_all",
        "invalidate_all_media", "invalidate_all_api",
    ):
        setattr(invalidator, name, AsyncMock(return_value="job-id"))
    return invalidator


@pytest.fixture
def statistics_service(review_repository, statistics_repository, job_queue, cache_invalidator):
    return StatisticsService(
        review_repository,
        statistics_repository,
        job_queue,
        cache_invalidator,
        page_size=100,
        max_iterations=10_000,
    )


@pytest.fixture
def event_producer(statistics_service):
    return ReviewEventProducer(statistics_service)


@pytest.fixture
def make_review():
    """Factory for reviews with sensible defaults and increasing created_at"""
    base = datetime(2024, 3, 1, tzinfo=UTC)
    counter = {"n": 0}

    def _make(product_id="prod-1", rating=5, status="published", review_id=None, **overrides):
        counter["n"] += 1
        fields = dict(
            user_id=f"user-{counter['n']}",
            product_id=product_id,
            rating=rating,
            original_language="en",
            review_en="Great product",
            country="AE",
            review_id=review_id or f"rev-{counter['n']:05d}",
            created_at=(base + timedelta(minutes=counter["n"])).isoformat(),
            publication_status=status,
        )
        fields.update(overrides)
        return new_review(**fields)

    return _make
