# Initialization order:
# 1. Load environment variables
# 2. Validate configuration (blocking - must pass)
# 3. Connect to MongoDB, ensure indexes, build the service container
# 4. Serve

from dotenv import load_dotenv

load_dotenv()

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from review_service.controllers import operational_controller
from review_service.core.config import config
from review_service.core.errors import (
    ErrorResponse,
    ReviewServiceError,
    error_response_handler,
    http_exception_handler,
    service_error_handler,
)
from review_service.core.indexes import create_indexes
from review_service.core.logger import logger
from review_service.db.mongodb import close_mongo_connection, connect_to_mongo
from review_service.dependencies.container import build_container
from review_service.middlewares import CorrelationIdMiddleware
from review_service.routers import product_router, review_router
from review_service.routers.review_router import limiter
from review_service.validators.config_validator import validate_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_config()
    db = await connect_to_mongo(config)
    await create_indexes(db)
    app.state.container = build_container(db, config)
    logger.info(
        "Review API service started",
        metadata={
            "service": {
                "name": config.service_name,
                "version": config.service_version,
                "environment": config.environment,
                "port": config.port,
            }
        },
    )
    try:
        yield
    finally:
        await close_mongo_connection()


def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "Validation error",
        metadata={"businessEvent": "VALIDATION_ERROR", "path": request.url.path, "errors": errors}
    )
    return JSONResponse(
        status_code=422, content={"error": "Validation error", "details": errors}
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Review Service", version=config.service_version, lifespan=lifespan)

    app.add_middleware(CorrelationIdMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(ErrorResponse, error_response_handler)
    app.add_exception_handler(ReviewServiceError, service_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(review_router, prefix="/api/reviews", tags=["reviews"])
    app.include_router(product_router, prefix="/api/products", tags=["products"])

    # Operational endpoints for infrastructure/monitoring
    app.get("/health")(operational_controller.health)
    app.get("/health/ready")(operational_controller.readiness)
    app.get("/health/live")(operational_controller.liveness)
    app.get("/metrics")(operational_controller.metrics)

    return app


app = create_app()


def run():
    logger.info(f"Review API service starting on port {config.port}")
    uvicorn.run(
        "review_service.main:app",
        host=config.host,
        port=config.port,
        reload=config.is_development,
    )


if __name__ == "__main__":
    run()
