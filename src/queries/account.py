"""
Active Account Resolution

Every query is scoped to one account (conta). The account id may come
from the caller, from the signed-in session, or nowhere at all; in the
last case the configured default account is used.

The fallback policy lives here and only here:
    explicit id -> session provider -> settings.account.default_account_id

Ids of 0 or None count as "not set".
"""

from typing import Callable, Optional

from src.config.settings import get_settings


AccountProvider = Callable[[], Optional[int]]


class ActiveAccountResolver:
    """Resolves the account id injected into query-building calls."""

    def __init__(
        self,
        provider: Optional[AccountProvider] = None,
        default_account_id: Optional[int] = None,
    ):
        self._provider = provider
        self._default = default_account_id or get_settings().account.default_account_id

    @property
    def default_account_id(self) -> int:
        return self._default

    def resolve(self, account_id: Optional[int] = None) -> int:
        if account_id:
            return account_id
        if self._provider is not None:
            current = self._provider()
            if current:
                return current
        return self._default

    __call__ = resolve
