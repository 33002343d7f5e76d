"""HTTP middleware for the JSON exporter"""
from .request_logging import RequestLoggingMiddleware

__all__ = [
    'RequestLoggingMiddleware',
]
