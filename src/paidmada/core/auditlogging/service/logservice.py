import time

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


class APILoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request: method, path, status, duration and client IP."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        client_host = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            processing_time = time.perf_counter() - start
            logger.error(
                f"{request.method} {request.url.path} - Error: {e} "
                f"({processing_time * 1000:.1f} ms, ip={client_host})"
            )
            raise

        processing_time = time.perf_counter() - start
        logger.info(
            f"{request.method} {request.url.path} - {response.status_code} "
            f"({processing_time * 1000:.1f} ms, ip={client_host}, "
            f"user_agent={request.headers.get('user-agent')})"
        )
        return response
