"""
Service container.

Built once per process (HTTP app, worker, CLI command) from a database handle
and the settings, and passed to everything that needs a collaborator.
"""

from motor.motor_asyncio import AsyncIOMotorDatabase

from review_service.core.config import Config, config as default_config
from review_service.db.mongodb import (
    FAILED_JOBS_COLLECTION,
    JOBS_COLLECTION,
    REVIEWS_COLLECTION,
    STATISTICS_COLLECTION,
)
from review_service.repositories.review_repository import ReviewRepository
from review_service.repositories.statistics_repository import StatisticsRepository
from review_service.services.backfill_service import BackfillService
from review_service.services.cache_invalidation import CloudFrontClient, CloudFrontService
from review_service.services.dapr_secret_manager import get_translation_config
from review_service.services.job_queue import MongoJobQueue
from review_service.services.media_upload_service import MediaUploadService
from review_service.services.review_events import ReviewEventProducer
from review_service.services.review_service import ReviewService
from review_service.services.statistics_service import StatisticsService
from review_service.services.translation_service import TranslationService


class ServiceContainer:
    def __init__(self, db: AsyncIOMotorDatabase, settings: Config):
        self.db = db
        self.config = settings

        self.review_repository = ReviewRepository(db[REVIEWS_COLLECTION])
        self.statistics_repository = StatisticsRepository(db[STATISTICS_COLLECTION])
        self.job_queue = MongoJobQueue(
            db[JOBS_COLLECTION],
            db[FAILED_JOBS_COLLECTION],
            settings.visibility_timeouts,
        )

        self.cloudfront_client = CloudFrontClient(settings)
        self.cache_invalidator = CloudFrontService(self.job_queue, self.cloudfront_client)

        self.statistics_service = StatisticsService(
            self.review_repository,
            self.statistics_repository,
            self.job_queue,
            self.cache_invalidator,
            page_size=settings.statistics_page_size,
            max_iterations=settings.statistics_max_iterations,
            recompute_on_miss=settings.statistics_recompute_on_miss,
        )
        self.event_producer = ReviewEventProducer(self.statistics_service)

        translation = get_translation_config(settings)
        self.translation_service = TranslationService(
            self.review_repository,
            api_key=translation['api_key'],
            endpoint=translation['endpoint'],
            timeout=translation['timeout'],
        )
        self.media_service = MediaUploadService(settings)

        self.review_service = ReviewService(
            self.review_repository,
            self.statistics_service,
            self.event_producer,
            self.cache_invalidator,
            self.media_service,
            self.translation_service,
        )
        self.backfill_service = BackfillService(
            self.review_repository,
            self.statistics_service,
            max_iterations=settings.statistics_max_iterations,
        )


def build_container(db: AsyncIOMotorDatabase, settings: Config = None) -> ServiceContainer:
    return ServiceContainer(db, settings or default_config)
