from typing import Any, Dict, Optional

from review_service.models.requests import BulkRatingsRequest
from review_service.models.review import review_resource


async def get_product_reviews(
    service,
    product_id: str,
    params: Dict[str, Any],
    per_page: int,
    next_token: Optional[str],
) -> Dict[str, Any]:
    """
    Reviews of a product with its pre-calculated rating summary.

    Returns:
        dict: {data, rating_summary, next_token?}
    """
    reviews, token, summary = await service.get_product_reviews(product_id, params, per_page, next_token)
    response: Dict[str, Any] = {
        "data": [review_resource(review) for review in reviews],
        "rating_summary": summary,
    }
    if token:
        response["next_token"] = token
    return response


async def get_rating_summary(statistics_service, product_id: str) -> Dict[str, Any]:
    return await statistics_service.get_summary(product_id)


async def get_bulk_rating_summaries(statistics_service, request: BulkRatingsRequest) -> Dict[str, Any]:
    return {"data": await statistics_service.get_bulk_summaries(request.product_ids)}
