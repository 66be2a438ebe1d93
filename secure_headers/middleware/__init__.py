"""ASGI integration."""

from secure_headers.middleware.secure_headers import SecureHeadersMiddleware, header_request

__all__ = ["SecureHeadersMiddleware", "header_request"]
