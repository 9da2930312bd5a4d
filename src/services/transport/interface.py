"""
Abstract Transport Interface

DESIGN DECISION: Every network call goes through one small async
interface. This allows us to:
1. Run the flows and the exporter against a scripted fake in tests
2. Keep the HTTP library out of everything above the services layer
3. Enforce a finite timeout on every request (it is a required argument)

Failures are reported with one exception family. Callers decide whether
a failure is defaulted (independent dashboard queries) or surfaced
(primary actions), using `user_message` for what the user sees.
"""

from abc import ABC, abstractmethod
from typing import Any, Literal, Optional


DEFAULT_USER_MESSAGE = "Falha na comunicação com o servidor."
TIMEOUT_USER_MESSAGE = "O servidor demorou para responder. Tente novamente."

Expect = Literal["json", "bytes"]


class Transport(ABC):
    """
    Abstract interface for HTTP requests against the finance API.

    Any transport (requests, a test fake, ...) must implement `request`.
    """

    @abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Optional[Any] = None,
        files: Optional[dict[str, Any]] = None,
        timeout: float,
        expect: Expect = "json",
    ) -> Any:
        """
        Perform one request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Path relative to the API base URL (e.g. /api/financas/metas)
            params: Flat string-valued query parameters
            json: JSON body
            files: Multipart files
            timeout: Finite timeout in seconds
            expect: "json" to decode the body, "bytes" for raw content

        Returns:
            Decoded JSON, None for an empty or non-JSON body, or bytes

        Raises:
            RequestTimeoutError: If the timeout elapsed
            HttpStatusError: If the server answered with a non-2xx status
            RequestFailedError: For any other network failure
        """
        pass


class RequestFailedError(Exception):
    """A request could not be completed."""

    def __init__(
        self,
        message: str,
        user_message: str = DEFAULT_USER_MESSAGE,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.user_message = user_message
        self.status = status

    def with_user_message(self, user_message: str) -> "RequestFailedError":
        """Replace the message shown to the user, keeping the technical detail."""
        self.user_message = user_message
        return self


class RequestTimeoutError(RequestFailedError):
    """The request exceeded its timeout."""

    def __init__(self, path: str, timeout: float):
        super().__init__(
            f"Request to {path} timed out after {timeout}s",
            user_message=TIMEOUT_USER_MESSAGE,
        )
        self.path = path
        self.timeout = timeout


class HttpStatusError(RequestFailedError):
    """The server answered with a non-success status code."""

    def __init__(self, status_code: int, payload: Any = None, path: str = ""):
        super().__init__(
            f"HTTP {status_code} from {path or 'server'}",
            status=status_code,
        )
        self.status_code = status_code
        self.payload = payload
