from __future__ import annotations

from dataclasses import dataclass, field

from .clients.catalog_client import CatalogClient
from .clients.inventory_client import InventoryClient
from .clients.reconciliations_client import ReconciliationsClient
from .config import ClientConfig
from .http_client import HttpClient
from .models import CurrentUser
from .tracing import TraceContext


@dataclass
class ApiSession:
    """Hands out resource clients that share one transport, trace context and credentials.

    Credentials and the current user are supplied by the host application;
    this package never stores them.
    """

    config: ClientConfig
    token: str | None = None
    session_cookie: str | None = None
    user: CurrentUser | None = None
    trace: TraceContext = field(default_factory=TraceContext)
    http: HttpClient | None = None

    def __post_init__(self) -> None:
        if self.http is None:
            self.http = HttpClient(config=self.config, trace=self.trace)

    def _client_kwargs(self, context_key: str | None) -> dict:
        return {
            "http": self.http,
            "access_token": self.token,
            "session_cookie": self.session_cookie,
            "context_key": context_key,
        }

    def catalog_client(self, context_key: str | None = None) -> CatalogClient:
        return CatalogClient(**self._client_kwargs(context_key))

    def inventory_client(self, context_key: str | None = None) -> InventoryClient:
        return InventoryClient(**self._client_kwargs(context_key))

    def reconciliations_client(self, context_key: str | None = None) -> ReconciliationsClient:
        return ReconciliationsClient(**self._client_kwargs(context_key))

    def switch_context(self, context_key: str) -> int:
        return self.http.switch_context(context_key)

    def establish(self, token: str | None, user: CurrentUser | None, session_cookie: str | None = None) -> None:
        self.token = token
        self.session_cookie = session_cookie
        self.user = user
        self.http.clear_cache()

    def clear(self) -> None:
        self.token = None
        self.session_cookie = None
        self.user = None
        self.http.clear_cache()
