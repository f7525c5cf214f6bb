from typing import Optional

from fastapi import APIRouter, Depends, Query

import review_service.controllers.product_review_controller as product_review_controller
from review_service.core.errors import ErrorResponseModel
from review_service.dependencies.services import get_review_service, get_statistics_service
from review_service.models.requests import BulkRatingsRequest
from review_service.models.review import ReviewLanguage

router = APIRouter()


@router.post("/ratings-summary", responses={422: {"model": ErrorResponseModel}})
async def bulk_rating_summaries(
    body: BulkRatingsRequest,
    statistics_service=Depends(get_statistics_service),
):
    """
    Rating summaries for several products; unknown products get a zeroed summary.
    """
    return await product_review_controller.get_bulk_rating_summaries(statistics_service, body)


@router.get("/{product_id}/reviews", responses={422: {"model": ErrorResponseModel}})
async def product_reviews(
    product_id: str,
    publication_status: Optional[str] = Query(None, pattern="^(pending|published|rejected|all)$"),
    user_id: Optional[str] = None,
    country: Optional[str] = None,
    language: Optional[ReviewLanguage] = None,
    per_page: int = Query(100, ge=1, le=100),
    next_token: Optional[str] = None,
    service=Depends(get_review_service),
):
    """
    Published reviews of a product (or ``publication_status``; ``all`` for every
    status) with its rating summary.
    """
    params = {
        "publication_status": publication_status,
        "user_id": user_id,
        "country": country,
        "language": language.value if language else None,
    }
    return await product_review_controller.get_product_reviews(
        service, product_id, params, per_page, next_token
    )


@router.get("/{product_id}/rating")
async def product_rating(product_id: str, statistics_service=Depends(get_statistics_service)):
    """
    Stored rating summary of a product, zeroed if it was never calculated.
    """
    return await product_review_controller.get_rating_summary(statistics_service, product_id)
