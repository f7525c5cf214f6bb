"""Tests for the rating statistics engine"""
from datetime import datetime, timedelta, UTC
from unittest.mock import AsyncMock, patch

import pytest

from review_service.core.errors import ExternalServiceError, IterationCeilingError, QueueError, StorageError
from review_service.models.statistics import RatingStatistics
from review_service.services.statistics_service import StatisticsService, compute_summary, valid_rating


class TestValidRating:
    """Test rating sanitising"""

    def test_accepts_ratings_in_range(self):
        """Test integers 1..5 and integral floats are accepted"""
        assert [valid_rating(r) for r in (1, 2, 3, 4, 5)] == [1, 2, 3, 4, 5]
        assert valid_rating(4.0) == 4

    def test_rejects_everything_else(self):
        """Test out of range, fractional, boolean and non-numeric values"""
        for value in (0, 6, -1, 3.5, True, None, "5", [5]):
            assert valid_rating(value) is None


class TestComputeSummary:
    """Test the aggregate arithmetic"""

    def test_five_ratings(self):
        """Test ratings 5,4,4,3,1"""
        summary = compute_summary("prod-1", {5: 1, 4: 2, 3: 1, 1: 1})

        assert summary.rating_count == 5
        assert summary.average_rating == 3.4
        assert summary.rating_distribution == {"1": 1, "2": 0, "3": 1, "4": 2, "5": 1}
        assert summary.percentage_distribution == {"1": 20.0, "2": 0.0, "3": 20.0, "4": 40.0, "5": 20.0}

    def test_zero_reviews(self):
        """Test an empty product does not divide by zero"""
        summary = compute_summary("prod-1", {})

        assert summary.rating_count == 0
        assert summary.average_rating == 0
        assert summary.rating_distribution == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}
        assert summary.percentage_distribution == {"1": 0.0, "2": 0.0, "3": 0.0, "4": 0.0, "5": 0.0}

    def test_rounds_half_up(self):
        """Test averages and percentages round half up to two places"""
        # 1 + 1 + 1 + 2 + 2 + 2 + 2 + 2 = 13 / 8 = 1.625
        summary = compute_summary("prod-1", {1: 3, 2: 5})
        assert summary.average_rating == 1.63
        # 3/8 = 37.5%, 5/8 = 62.5%
        assert summary.percentage_distribution["1"] == 37.5
        assert summary.percentage_distribution["2"] == 62.5

        thirds = compute_summary("prod-1", {1: 1, 2: 1, 4: 1})
        assert thirds.percentage_distribution["1"] == 33.33
        assert thirds.average_rating == 2.33

    def test_uses_given_timestamp(self):
        """Test last_calculated_at is taken from the argument"""
        at = datetime(2024, 1, 1, tzinfo=UTC)
        assert compute_summary("prod-1", {5: 1}, calculated_at=at).last_calculated_at == at


class TestCalculate:
    """Test recomputing and storing a product summary"""

    @pytest.mark.asyncio
    async def test_single_product_five_ratings(self, statistics_service, review_repository,
                                               statistics_repository, make_review):
        """Test five published reviews produce the expected stored summary"""
        for rating in (5, 4, 4, 3, 1):
            review_repository.add(make_review(rating=rating))

        result = await statistics_service.calculate("prod-1")

        stored = statistics_repository.records["prod-1"]
        assert stored == result
        assert stored.rating_count == 5
        assert stored.average_rating == 3.4
        assert stored.rating_distribution == {"1": 1, "2": 0, "3": 1, "4": 2, "5": 1}
        assert stored.percentage_distribution == {"1": 20.0, "2": 0.0, "3": 20.0, "4": 40.0, "5": 20.0}

    @pytest.mark.asyncio
    async def test_recompute_after_rejection(self, statistics_service, review_repository,
                                             statistics_repository, make_review):
        """Test a published 4-star review moving to rejected drops out of the summary"""
        reviews = [review_repository.add(make_review(rating=r)) for r in (5, 4, 4, 3, 1)]
        await statistics_service.calculate("prod-1")

        rejected = reviews[1]
        rejected.publication_status = "rejected"
        await review_repository.put(rejected)
        await statistics_service.calculate("prod-1")

        stored = statistics_repository.records["prod-1"]
        assert stored.rating_count == 4
        assert stored.average_rating == 3.25
        assert stored.rating_distribution == {"1": 1, "2": 0, "3": 1, "4": 1, "5": 1}
        assert stored.percentage_distribution == {"1": 25.0, "2": 0.0, "3": 25.0, "4": 25.0, "5": 25.0}

    @pytest.mark.asyncio
    async def test_only_pending_reviews(self, statistics_service, review_repository,
                                        statistics_repository, make_review):
        """Test a product with no published reviews still gets a zeroed record"""
        review_repository.add(make_review(rating=5, status="pending"))
        review_repository.add(make_review(rating=2, status="rejected"))

        await statistics_service.calculate("prod-1")

        stored = statistics_repository.records["prod-1"]
        assert stored.rating_count == 0
        assert stored.average_rating == 0
        assert set(stored.rating_distribution) == {"1", "2", "3", "4", "5"}
        assert all(v == 0 for v in stored.rating_distribution.values())
        assert all(v == 0.0 for v in stored.percentage_distribution.values())

    @pytest.mark.asyncio
    async def test_counts_only_matching_product(self, statistics_service, review_repository,
                                                statistics_repository, make_review):
        """Test reviews of other products are ignored"""
        review_repository.add(make_review(product_id="prod-1", rating=5))
        review_repository.add(make_review(product_id="prod-2", rating=1))
        review_repository.add(make_review(product_id="prod-2", rating=1))

        await statistics_service.calculate("prod-1")

        assert statistics_repository.records["prod-1"].rating_count == 1
        assert "prod-2" not in statistics_repository.records

    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, statistics_service, review_repository, make_review):
        """Test two consecutive recomputes agree on everything but the timestamp"""
        for rating in (5, 3, 2):
            review_repository.add(make_review(rating=rating))

        first = await statistics_service.calculate("prod-1")
        second = await statistics_service.calculate("prod-1")

        exclude = {"last_calculated_at"}
        assert first.model_dump(exclude=exclude) == second.model_dump(exclude=exclude)
        assert second.last_calculated_at >= first.last_calculated_at

    @pytest.mark.asyncio
    async def test_pages_through_every_review(self, review_repository, statistics_repository,
                                              job_queue, make_review):
        """Test each review is seen exactly once across several pages"""
        for i in range(23):
            review_repository.add(make_review(rating=(i % 5) + 1))
        service = StatisticsService(review_repository, statistics_repository, job_queue, page_size=5)

        result = await service.calculate("prod-1")

        assert result.rating_count == 23
        assert result.rating_distribution == {"1": 5, "2": 5, "3": 5, "4": 4, "5": 4}
        # 4 full pages of 5 and a short page of 3
        assert review_repository.page_reads == 5

    @pytest.mark.asyncio
    async def test_exact_multiple_of_page_size(self, review_repository, statistics_repository,
                                               job_queue, make_review):
        """Test a full last page ends on the following empty page"""
        for _ in range(10):
            review_repository.add(make_review(rating=4))
        service = StatisticsService(review_repository, statistics_repository, job_queue, page_size=5)

        result = await service.calculate("prod-1")

        assert result.rating_count == 10
        assert review_repository.page_reads == 3

    @pytest.mark.asyncio
    async def test_skips_invalid_ratings(self, statistics_service, review_repository,
                                         statistics_repository, make_review):
        """Test stored reviews with bad ratings are logged and left out"""
        review_repository.add(make_review(rating=5))
        review_repository.add_document({
            "_id": "rev-bad-1", "product_id": "prod-1", "publication_status": "published", "rating": 9,
        })
        review_repository.add_document({
            "_id": "rev-bad-2", "product_id": "prod-1", "publication_status": "published", "rating": None,
        })

        with patch('review_service.services.statistics_service.logger') as mock_logger:
            result = await statistics_service.calculate("prod-1")

        assert result.rating_count == 1
        assert result.average_rating == 5.0
        assert mock_logger.warning.call_count == 2

    @pytest.mark.asyncio
    async def test_iteration_ceiling(self, review_repository, statistics_repository, job_queue, make_review):
        """Test pagination that does not end in time fails without writing"""
        for _ in range(6):
            review_repository.add(make_review(rating=3))
        service = StatisticsService(
            review_repository, statistics_repository, job_queue, page_size=2, max_iterations=2
        )

        with patch('review_service.services.statistics_service.logger') as mock_logger:
            with pytest.raises(IterationCeilingError) as exc_info:
                await service.calculate("prod-1")

        assert exc_info.value.details == {"productId": "prod-1"}
        mock_logger.critical.assert_called_once()
        assert statistics_repository.writes == []

    @pytest.mark.asyncio
    async def test_ceiling_not_hit_at_exact_limit(self, review_repository, statistics_repository,
                                                  job_queue, make_review):
        """Test reviews filling exactly max_iterations short pages are counted"""
        for _ in range(3):
            review_repository.add(make_review(rating=3))
        service = StatisticsService(
            review_repository, statistics_repository, job_queue, page_size=2, max_iterations=2
        )

        result = await service.calculate("prod-1")

        assert result.rating_count == 3

    @pytest.mark.asyncio
    async def test_invalidates_statistics_paths(self, statistics_service, cache_invalidator, make_review,
                                                review_repository):
        """Test a recompute invalidates the product's cached responses"""
        review_repository.add(make_review(rating=4))

        await statistics_service.calculate("prod-1")

        cache_invalidator.invalidate_statistics.assert_awaited_once_with("prod-1")

    @pytest.mark.asyncio
    async def test_invalidation_failure_does_not_fail_recompute(self, statistics_service, cache_invalidator,
                                                               statistics_repository):
        """Test invalidation errors are logged and swallowed"""
        cache_invalidator.invalidate_statistics.side_effect = ExternalServiceError("CloudFront down")

        with patch('review_service.services.statistics_service.logger') as mock_logger:
            result = await statistics_service.calculate("prod-1")

        assert result.rating_count == 0
        assert "prod-1" in statistics_repository.records
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self, review_repository, job_queue):
        """Test a failed write surfaces so the job is retried"""
        statistics_repository = AsyncMock()
        statistics_repository.upsert.side_effect = StorageError("write failed")
        service = StatisticsService(review_repository, statistics_repository, job_queue)

        with pytest.raises(StorageError):
            await service.calculate("prod-1")

    @pytest.mark.asyncio
    async def test_older_result_does_not_overwrite_newer(self, statistics_repository):
        """Test the store keeps the newest summary"""
        now = datetime.now(UTC)
        newer = compute_summary("prod-1", {5: 2}, calculated_at=now)
        older = compute_summary("prod-1", {1: 1}, calculated_at=now - timedelta(seconds=5))

        assert await statistics_repository.upsert(newer) is True
        assert await statistics_repository.upsert(older) is False
        assert statistics_repository.records["prod-1"] == newer


class TestQueueRecalculation:
    """Test scheduling recomputes"""

    @pytest.mark.asyncio
    async def test_enqueues_recompute_job(self, statistics_service, job_queue):
        """Test the job carries the product id and is consolidated by it"""
        job_id = await statistics_service.queue_recalculation("prod-1")

        assert job_id == "job-1"
        job = job_queue.jobs[0]
        assert job["spec"].name == "statistics.recompute"
        assert job["spec"].max_attempts == 3
        assert job["spec"].backoff == [60, 180, 300]
        assert job["payload"]["product_id"] == "prod-1"
        assert "enqueued_at" in job["payload"]
        assert job["unique_key"] == "prod-1"

    @pytest.mark.asyncio
    async def test_delay_is_passed_through(self, statistics_service, job_queue):
        """Test a delayed recompute"""
        await statistics_service.queue_recalculation("prod-1", delay=30)
        assert job_queue.jobs[0]["delay"] == 30


class TestGetSummary:
    """Test reading stored summaries"""

    @pytest.mark.asyncio
    async def test_stored_summary(self, statistics_service, statistics_repository):
        """Test a stored record is returned in summary shape"""
        await statistics_repository.upsert(compute_summary("prod-1", {5: 1, 4: 1}))

        summary = await statistics_service.get_summary("prod-1")

        assert summary["average"] == 4.5
        assert summary["count"] == 2
        assert summary["distribution"]["5"] == 1
        assert summary["percentage_distribution"]["4"] == 50.0
        assert "product_id" not in summary

    @pytest.mark.asyncio
    async def test_missing_summary_is_zeroed(self, statistics_service, job_queue):
        """Test a never-computed product reads as zero without scheduling work"""
        summary = await statistics_service.get_summary("prod-unknown")

        assert summary["average"] == 0
        assert summary["count"] == 0
        assert summary["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}
        assert job_queue.jobs == []

    @pytest.mark.asyncio
    async def test_missing_summary_schedules_recompute_when_enabled(self, review_repository,
                                                                    statistics_repository, job_queue):
        """Test recompute on miss"""
        service = StatisticsService(review_repository, statistics_repository, job_queue, recompute_on_miss=True)

        await service.get_summary("prod-unknown")

        assert job_queue.jobs[0]["payload"]["product_id"] == "prod-unknown"

    @pytest.mark.asyncio
    async def test_recompute_on_miss_queue_failure_still_answers(self, review_repository, statistics_repository):
        """Test a queue failure does not break the read"""
        job_queue = AsyncMock()
        job_queue.enqueue.side_effect = QueueError("queue down")
        service = StatisticsService(review_repository, statistics_repository, job_queue, recompute_on_miss=True)

        with patch('review_service.services.statistics_service.logger'):
            summary = await service.get_summary("prod-unknown")

        assert summary["count"] == 0


class TestBulkSummaries:
    """Test bulk summary lookup"""

    @pytest.mark.asyncio
    async def test_missing_product_gets_zeroed_entry(self, statistics_service, statistics_repository):
        """Test three ids where the middle one has no record"""
        await statistics_repository.upsert(compute_summary("prod-a", {5: 1}))
        await statistics_repository.upsert(compute_summary("prod-c", {1: 1, 3: 1}))

        summaries = await statistics_service.get_bulk_summaries(["prod-a", "prod-b", "prod-c"])

        assert list(summaries) == ["prod-a", "prod-b", "prod-c"]
        assert summaries["prod-a"]["average"] == 5.0
        assert summaries["prod-b"] == {
            "product_id": "prod-b",
            "average": 0,
            "count": 0,
            "distribution": {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0},
            "percentage_distribution": {"1": 0.0, "2": 0.0, "3": 0.0, "4": 0.0, "5": 0.0},
        }
        assert summaries["prod-c"]["product_id"] == "prod-c"
        assert summaries["prod-c"]["average"] == 2.0

    @pytest.mark.asyncio
    async def test_stored_record_round_trips_from_document(self):
        """Test a document missing distribution keys is filled in"""
        statistics = RatingStatistics.from_document({
            "_id": "prod-1",
            "average_rating": 5.0,
            "rating_count": 1,
            "rating_distribution": {"5": 1},
            "percentage_distribution": {"5": 100.0},
            "last_calculated_at": datetime(2024, 1, 1, tzinfo=UTC),
        })

        assert statistics.product_id == "prod-1"
        assert statistics.rating_distribution == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 1}
        assert statistics.percentage_distribution["1"] == 0.0
