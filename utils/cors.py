import logging
from typing import List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, Accept, X-Requested-With"
MAX_AGE = "3600"


def parse_origins(raw: str) -> List[str]:
    origins = [o.strip() for o in raw.split(",")]
    return [o for o in origins if o]


def resolve_origin(allowed: List[str], origin: Optional[str]) -> Optional[str]:
    """Value for Access-Control-Allow-Origin, or None to leave it unset."""
    if not origin:
        return allowed[0] if allowed else None
    if allowed == ["*"]:
        return origin
    if origin in allowed:
        return origin
    return None


class CORSPolicyMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, allowed_origins: str):
        super().__init__(app)
        self.allowed = parse_origins(allowed_origins)
        if self.allowed == ["*"]:
            logger.warning(
                "ALLOWED_ORIGINS is '*': every request origin will be echoed "
                "with credentials allowed"
            )

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        origin = request.headers.get("origin")
        allow_origin = resolve_origin(self.allowed, origin)
        if allow_origin is not None:
            response.headers["Access-Control-Allow-Origin"] = allow_origin
            if origin:
                response.headers.add_vary_header("Origin")

        response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
        response.headers["Access-Control-Max-Age"] = MAX_AGE
        response.headers["Access-Control-Allow-Credentials"] = "true"
        return response
