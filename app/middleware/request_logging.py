"""
Request logging middleware.
Tags each request with a short id, enforces the request size limit, and logs timings.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from app.services.error_handler import ErrorHandlerService
from app.utils.exceptions import APIException, BadRequestError, PayloadTooLargeError

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request ids, size limits and request logging.
    The request id is returned in the X-Request-ID header and reused in error bodies.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 10 * 1024 * 1024,  # 10MB
        enable_request_logging: bool = True
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request through the middleware.

        Args:
            request: FastAPI request object
            call_next: Next middleware/handler in chain

        Returns:
            Response object
        """
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()

        try:
            self._validate_request_size(request)

            if self.enable_request_logging:
                logger.info(
                    f"Request [{request_id}]: {request.method} {request.url.path}",
                    extra={
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "client_ip": self._get_client_ip(request)
                    }
                )

            response = await call_next(request)

        except APIException as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
        except Exception as exc:
            response = ErrorHandlerService.handle_unexpected_error(exc, request)

        processing_time = time.time() - start_time
        if self.enable_request_logging:
            logger.info(
                f"Response [{request_id}]: {request.method} {request.url.path} "
                f"{response.status_code} in {processing_time * 1000:.1f}ms",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "processing_time": processing_time
                }
            )

        response.headers["X-Request-ID"] = request_id
        return response

    def _validate_request_size(self, request: Request) -> None:
        """
        Validate request content length.

        Raises:
            PayloadTooLargeError: If request size exceeds limit
            BadRequestError: If the content-length header is not a number
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return

        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")

        if size > self.max_request_size:
            raise PayloadTooLargeError(size, self.max_request_size)

    def _get_client_ip(self, request: Request) -> str:
        """Client address, honouring proxy headers."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"
