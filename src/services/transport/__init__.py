"""
Transport Package

Provides the abstract request interface, its failure taxonomy, and the
requests-based implementation.
"""

from src.services.transport.interface import (
    HttpStatusError,
    RequestFailedError,
    RequestTimeoutError,
    Transport,
)
from src.services.transport.http_client import RequestsTransport

__all__ = [
    # Interface
    "Transport",
    # Exceptions
    "HttpStatusError",
    "RequestFailedError",
    "RequestTimeoutError",
    # requests implementation
    "RequestsTransport",
]
