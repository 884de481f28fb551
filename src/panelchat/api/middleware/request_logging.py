"""
Request logging middleware -- one log line per HTTP request.

For streaming responses the duration covers the time to the response
headers, not the whole stream.
"""

import logging
import time

from fastapi import Request

logger = logging.getLogger(__name__)


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.error(
            f"[Request] {request.method} {request.url.path} -> 500 ({duration_ms:.1f}ms)"
        )
        raise

    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"[Request] {request.method} {request.url.path} -> "
        f"{response.status_code} ({duration_ms:.1f}ms)"
    )
    return response
