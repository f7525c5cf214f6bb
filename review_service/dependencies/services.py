"""
Service layer dependency injection for FastAPI.

The application builds one ``ServiceContainer`` at startup and keeps it on
``app.state``. These dependencies hand its services to route handlers; tests
replace them through ``app.dependency_overrides``.
"""

from fastapi import Request

from review_service.dependencies.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_review_service(request: Request):
    """
    FastAPI dependency to get the ReviewService.

    Usage:
        @router.get("/reviews")
        async def list_reviews(service=Depends(get_review_service)):
            ...
    """
    return get_container(request).review_service


def get_statistics_service(request: Request):
    return get_container(request).statistics_service


def get_cache_invalidator(request: Request):
    return get_container(request).cache_invalidator
