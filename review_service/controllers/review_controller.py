from typing import Any, Dict, List, Optional

from fastapi import UploadFile

from review_service.core.errors import ErrorResponse, NotFoundError, ReviewServiceError, StorageError
from review_service.core.logger import logger
from review_service.models.requests import CreateReviewRequest
from review_service.models.review import review_resource
from review_service.validators.review_validators import validate_media_file


async def read_media_files(
    files: Optional[List[UploadFile]],
    allowed_extensions: List[str],
    max_bytes: int,
) -> List[tuple]:
    """
    Read and validate uploaded media before anything is written.

    Raises:
        ErrorResponse: 422 listing every rejected file
    """
    media = []
    errors = []
    for upload in files or []:
        if not upload.filename:
            continue
        content = await upload.read()
        error = validate_media_file(upload.filename, len(content), allowed_extensions, max_bytes)
        if error:
            errors.append(error)
        else:
            media.append((upload.filename, content, upload.content_type))

    if errors:
        raise ErrorResponse("Validation error", status_code=422, details={"media_files": errors})
    return media


async def create_review(service, request: CreateReviewRequest, media_files: List[tuple]) -> Dict[str, Any]:
    """
    Store a new review (status pending) with its media.

    Returns:
        dict: the review resource
    """
    review = await service.create_review(request, media_files)
    return review_resource(review)


async def list_reviews(
    service,
    cache_invalidator,
    params: Dict[str, Any],
    per_page: int,
    next_token: Optional[str],
    invalidate_cache: bool,
    url,
) -> Dict[str, Any]:
    """
    One page of reviews, newest first.

    ``url`` is the request URL; ``links.next`` reuses its query string with the
    new token.
    """
    reviews, token = await service.list_reviews(params, per_page, next_token)

    if invalidate_cache:
        try:
            await cache_invalidator.invalidate(["/api/reviews"])
        except ReviewServiceError as e:
            logger.error("Failed to queue /api/reviews invalidation", error=e)

    response: Dict[str, Any] = {"data": [review_resource(review) for review in reviews]}
    links = {"first": str(url.remove_query_params("next_token"))}
    if token:
        response["next_token"] = token
        links["next"] = str(url.remove_query_params("next_token").include_query_params(next_token=token))
    response["links"] = links
    response["meta"] = {"per_page": per_page, "count": len(reviews)}
    return response


async def pending_check(service) -> Dict[str, bool]:
    return {"has_pending_reviews": await service.has_pending_reviews()}


async def status_counts(service) -> Dict[str, Any]:
    return {"data": await service.status_counts()}


async def delete_review(service, review_id: str) -> Dict[str, str]:
    await service.delete_review(review_id)
    return {"message": "Review deleted successfully"}


async def update_publication_status(service, review_id: str, publication_status: str) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: unknown review
        ErrorResponse: 500 when the review could not be saved
    """
    try:
        review = await service.update_publication_status(review_id, publication_status)
    except StorageError as e:
        logger.error(
            "Failed to update publication status",
            error=e,
            metadata={"reviewId": review_id, "status": publication_status},
        )
        raise ErrorResponse(
            "Failed to update publication status",
            status_code=500,
            details={"reason": e.message},
        )
    return review_resource(review)


async def translate_review(service, review_id: str, language: str) -> Dict[str, Any]:
    try:
        review = await service.translate_review(review_id, language)
    except NotFoundError:
        raise
    except ReviewServiceError as e:
        logger.error(
            "Translation failed",
            error=e,
            metadata={"reviewId": review_id, "language": language},
        )
        raise ErrorResponse("Translation failed", status_code=500, details={"reason": e.message})
    return review_resource(review)
