"""Services package."""

from src.services.transport import (
    HttpStatusError,
    RequestFailedError,
    RequestsTransport,
    RequestTimeoutError,
    Transport,
)
from src.services.api import FinanceApi

__all__ = [
    # API client
    "FinanceApi",
    # Transport
    "HttpStatusError",
    "RequestFailedError",
    "RequestsTransport",
    "RequestTimeoutError",
    "Transport",
]
