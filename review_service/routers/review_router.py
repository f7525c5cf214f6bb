from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

import review_service.controllers.review_controller as review_controller
from review_service.core.config import config
from review_service.core.errors import ErrorResponseModel
from review_service.dependencies.services import get_cache_invalidator, get_review_service
from review_service.models.requests import CreateReviewRequest, UpdatePublicationStatusRequest
from review_service.models.review import PublicationStatus, ReviewLanguage

limiter = Limiter(key_func=get_remote_address, enabled=config.rate_limit_enabled)

router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={
        422: {"model": ErrorResponseModel},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(config.review_create_rate_limit)
async def create_review(
    request: Request,
    user_id: str = Form(...),
    product_id: str = Form(...),
    rating: int = Form(...),
    original_language: str = Form(...),
    country: str = Form(...),
    review_en: Optional[str] = Form(None),
    review_ar: Optional[str] = Form(None),
    media_files: List[UploadFile] = File(default=[]),
    service=Depends(get_review_service),
):
    """
    Create a review. New reviews are pending until moderated. Rate limited.
    """
    try:
        payload = CreateReviewRequest(
            user_id=user_id,
            product_id=product_id,
            rating=rating,
            original_language=original_language,
            country=country,
            review_en=review_en,
            review_ar=review_ar,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))

    media = await review_controller.read_media_files(
        media_files, config.media_allowed_extensions, config.media_max_bytes
    )
    return await review_controller.create_review(service, payload, media)


@router.get("", responses={422: {"model": ErrorResponseModel}})
async def list_reviews(
    request: Request,
    publication_status: Optional[PublicationStatus] = None,
    user_id: Optional[str] = None,
    product_id: Optional[str] = None,
    country: Optional[str] = None,
    language: Optional[ReviewLanguage] = None,
    per_page: int = Query(100, ge=1, le=100),
    next_token: Optional[str] = None,
    invalidate_cache: bool = False,
    service=Depends(get_review_service),
    cache_invalidator=Depends(get_cache_invalidator),
):
    """
    List reviews filtered by status, user or product, newest first.
    """
    params = {
        "publication_status": publication_status.value if publication_status else None,
        "user_id": user_id,
        "product_id": product_id,
        "country": country,
        "language": language.value if language else None,
    }
    return await review_controller.list_reviews(
        service, cache_invalidator, params, per_page, next_token, invalidate_cache, request.url
    )


@router.get("/pending-check")
async def pending_check(service=Depends(get_review_service)):
    """
    Whether any review is waiting for moderation.
    """
    return await review_controller.pending_check(service)


@router.get("/status-counts")
async def status_counts(service=Depends(get_review_service)):
    return await review_controller.status_counts(service)


@router.delete("/{review_id}", responses={404: {"model": ErrorResponseModel}})
async def delete_review(review_id: str, service=Depends(get_review_service)):
    return await review_controller.delete_review(service, review_id)


@router.put(
    "/{review_id}/publication",
    responses={404: {"model": ErrorResponseModel}, 500: {"model": ErrorResponseModel}},
)
async def update_publication_status(
    review_id: str,
    body: UpdatePublicationStatusRequest,
    service=Depends(get_review_service),
):
    """
    Moderate a review. Every change schedules a statistics recompute.
    """
    return await review_controller.update_publication_status(service, review_id, body.publication_status)


@router.get(
    "/{review_id}/translate",
    responses={404: {"model": ErrorResponseModel}, 500: {"model": ErrorResponseModel}},
)
async def translate_review(
    review_id: str,
    language: ReviewLanguage,
    service=Depends(get_review_service),
):
    """
    The review with its text in ``language``, translated on first request.
    """
    return await review_controller.translate_review(service, review_id, language.value)
