"""Fixtures for HTTP-level tests"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from review_service.dependencies.services import (
    get_cache_invalidator,
    get_review_service,
    get_statistics_service,
)
from review_service.main import app
from review_service.routers.review_router import limiter
from review_service.services.review_service import ReviewService
from review_service.services.translation_service import TranslationService


@pytest.fixture
def media_service():
    service = MagicMock()
    service.upload_many = AsyncMock(return_value=[])
    return service


@pytest.fixture
def review_service(review_repository, statistics_service, event_producer, cache_invalidator, media_service):
    translation_service = TranslationService(review_repository, api_key="key", endpoint="https://translate.test")
    translation_service.translate = AsyncMock(return_value="ترجمة")
    return ReviewService(
        review_repository,
        statistics_service,
        event_producer,
        cache_invalidator,
        media_service,
        translation_service,
    )


@pytest.fixture
def client(review_service, statistics_service, cache_invalidator):
    """Test client without the lifespan (no MongoDB), services from in-memory stores"""
    limiter.enabled = False
    app.dependency_overrides[get_review_service] = lambda: review_service
    app.dependency_overrides[get_statistics_service] = lambda: statistics_service
    app.dependency_overrides[get_cache_invalidator] = lambda: cache_invalidator
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True
