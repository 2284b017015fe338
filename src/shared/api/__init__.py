"""
Shared API
==========

Middleware and exception handlers shared by every module's routes.
"""

from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)

__all__ = [
    "CorrelationIDMiddleware",
    "LoggingMiddleware",
    "application_exception_handler",
    "global_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
]
