"""
Shared fixtures.

No test talks to a real server: FakeTransport answers requests from a
route table and records every call.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Optional

import pytest

from src.config.settings import ApiSettings, get_settings
from src.queries.account import ActiveAccountResolver
from src.services.api import FinanceApi
from src.services.transport.interface import Transport


@dataclass
class RecordedCall:
    method: str
    path: str
    params: Optional[dict]
    json: Any
    files: Any
    timeout: float
    expect: str


class FakeTransport(Transport):
    """
    Scripted transport.

    Routes map "METHOD /path" (or just "/path") to a response value, an
    exception instance to raise, or a callable receiving the params
    (sync or async) that returns either.
    """

    def __init__(self, routes: Optional[dict[str, Any]] = None):
        self.routes = routes or {}
        self.calls: list[RecordedCall] = []

    def calls_to(self, path: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.path == path]

    async def request(
        self,
        method,
        path,
        *,
        params=None,
        json=None,
        files=None,
        timeout,
        expect="json",
    ):
        self.calls.append(RecordedCall(method, path, params, json, files, timeout, expect))

        key = f"{method} {path}"
        if key in self.routes:
            handler = self.routes[key]
        else:
            handler = self.routes.get(path)

        result = handler(params) if callable(handler) else handler
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def api(transport: FakeTransport) -> FinanceApi:
    return FinanceApi(
        transport,
        account_resolver=ActiveAccountResolver(default_account_id=1),
        settings=ApiSettings(),
    )
