"""HTTP request pipeline helpers."""

from .middleware import (
    RedirectNotAllowed,
    VerifyRedirectUrlMiddleware,
    ensure_redirect_host,
    verify_redirect_url,
)

__all__ = [
    "RedirectNotAllowed",
    "VerifyRedirectUrlMiddleware",
    "ensure_redirect_host",
    "verify_redirect_url",
]
