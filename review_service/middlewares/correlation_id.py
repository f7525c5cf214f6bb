from starlette.middleware.base import BaseHTTPMiddleware

from review_service.utils.correlation_id import (
    CORRELATION_ID_HEADER,
    create_correlation_id,
    extract_correlation_id_from_headers,
    set_correlation_id,
)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Extract or generate a correlation ID for every request and echo it back.
    Everything logged or enqueued while handling the request carries it.
    """

    async def dispatch(self, request, call_next):
        correlation_id = (
            extract_correlation_id_from_headers(dict(request.headers))
            or create_correlation_id()
        )
        set_correlation_id(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
