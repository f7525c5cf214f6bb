from review_service.routers.product_router import router as product_router
from review_service.routers.review_router import router as review_router

__all__ = ["product_router", "review_router"]
