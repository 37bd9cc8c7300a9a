"""Middleware package for the FastAPI application."""

from luxora.middleware.request_tracing import RequestTracingMiddleware, get_request_id

__all__ = ["RequestTracingMiddleware", "get_request_id"]
