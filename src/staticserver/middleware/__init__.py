"""
Middleware wrapped around the request handler.

    LoggingMiddleware   Access log line per request
    CORSMiddleware      CORS headers on every response, OPTIONS → 204
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .cors import CORSMiddleware, CORSConfig

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
    "CORSMiddleware",
    "CORSConfig",
]
