import time
from collections import defaultdict
from typing import Dict, List

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding window request limit per client IP, on paths under path_prefix only."""

    def __init__(self, app, request_limit: int = 100, window_seconds: int = 15 * 60, path_prefix: str = "/api/"):
        super().__init__(app)
        self.request_limit = request_limit
        self.window_seconds = window_seconds
        self.path_prefix = path_prefix
        self.clients: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        ip = request.client.host if request.client else "unknown"
        now = time.time()

        # Drop requests that left the window
        self.clients[ip] = [
            timestamp for timestamp in self.clients[ip]
            if now - timestamp < self.window_seconds
        ]

        if len(self.clients[ip]) >= self.request_limit:
            retry_after = max(int(self.window_seconds - (now - self.clients[ip][0])), 1)
            logger.warning(f"[RATE_LIMIT] {ip} exceeded {self.request_limit} requests")
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": {
                        "code": "RATE_LIMIT_EXCEEDED",
                        "message": "Too many requests, please try again later",
                    },
                },
                headers={"Retry-After": str(retry_after)},
            )

        self.clients[ip].append(now)
        return await call_next(request)
