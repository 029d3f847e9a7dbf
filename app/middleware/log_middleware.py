import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from app.core.logger import logger
from app.core.rate_limit import get_client_ip

class LogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        clinic_id = request.headers.get("x-clinic-id")
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {duration_ms:.1f}ms | ip={get_client_ip(request)}"
            + (f" | clinic={clinic_id}" if clinic_id else "")
        )
        return response
