"""
Middleware for the PLP Admin API
"""
from app.middleware.request_tracking import RequestTrackingMiddleware

__all__ = [
    "RequestTrackingMiddleware",
]
