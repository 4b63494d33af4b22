# Middleware package init
"""
PhotoSharing Backend — Middleware Package
===========================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    The request ID is assigned first so that every access log line and
    every fault body produced further down carries it.
"""

from photosharing.middleware.logging import RequestLoggingMiddleware
from photosharing.middleware.request_id import RequestIDMiddleware, request_id_var

__all__ = ["RequestIDMiddleware", "RequestLoggingMiddleware", "request_id_var"]
