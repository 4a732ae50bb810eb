"""Redirect URL verification.

Endpoints that bounce the user back to a `redirect` query parameter must only
send them to the host that served the request. Relative URLs and requests
without a `redirect` parameter always pass.

```python
app = FastAPI()
app.add_middleware(VerifyRedirectUrlMiddleware)

# or per route
@app.get("/billing/portal", dependencies=[Depends(verify_redirect_url)])
async def portal(): ...
```
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

REDIRECT_PARAMETER = "redirect"


class RedirectNotAllowed(HTTPException):
    """403 raised when a redirect target points at another host."""

    def __init__(self, detail: str = "Redirect host mismatch."):
        super().__init__(status_code=403, detail=detail)


def ensure_redirect_host(redirect: Optional[str], host: Optional[str]) -> None:
    """Raise RedirectNotAllowed unless `redirect` stays on `host`.

    Hosts compare case-insensitively and without their port. A target that
    cannot be parsed is rejected.
    """
    if not redirect:
        return

    try:
        target = urlsplit(redirect).hostname
    except ValueError:
        # Unparseable targets, e.g. an unterminated IPv6 literal
        raise RedirectNotAllowed() from None
    if target is None:
        return

    current = urlsplit(f"//{host}").hostname if host else None
    if current is None or target.lower() != current.lower():
        raise RedirectNotAllowed()


class VerifyRedirectUrlMiddleware(BaseHTTPMiddleware):
    """Reject requests whose `redirect` parameter leaves the current host."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        redirect = request.query_params.get(REDIRECT_PARAMETER)
        try:
            ensure_redirect_host(redirect, request.url.hostname)
        except RedirectNotAllowed as e:
            logger.warning(f"Rejected redirect to {redirect} from {request.url.hostname}")
            return JSONResponse({"detail": e.detail}, status_code=e.status_code)

        return await call_next(request)


async def verify_redirect_url(request: Request) -> None:
    """FastAPI dependency form of the redirect check."""
    redirect = request.query_params.get(REDIRECT_PARAMETER)
    try:
        ensure_redirect_host(redirect, request.url.hostname)
    except RedirectNotAllowed:
        logger.warning(f"Rejected redirect to {redirect} from {request.url.hostname}")
        raise
