from __future__ import annotations

import http.client
import logging
from typing import Dict, Mapping, Optional
from urllib.error import URLError
from urllib.parse import urlencode

from restgraph.auth.authorizer import Authorizer, is_authorizer
from restgraph.client.http import HttpResponse, Message, default_opener, perform
from restgraph.config import GraphConfig
from restgraph.errors import TransportError

log = logging.getLogger("restgraph.call")

_QUERY_METHODS = frozenset({"GET", "DELETE", "HEAD"})


class RestProxy:
    """Factory for calls rooted at one endpoint."""

    def __init__(self, url_format: str, timeout: float = 30.0):
        self.url_format = url_format.rstrip("/")
        self.timeout = timeout

    def new_call(self) -> "RestProxyCall":
        return RestProxyCall(self.url_format, timeout=self.timeout)


class RestProxyCall:
    """A request under construction against a fixed endpoint.

    The call keeps a copy of the endpoint, not a reference to the proxy
    that created it.
    """

    def __init__(self, endpoint: str, *, timeout: float = 30.0):
        self.endpoint = endpoint
        self.timeout = timeout
        self.method = "GET"
        self.function = ""
        self._params: Dict[str, str] = {}
        self._headers: Dict[str, str] = {}

    def set_function(self, function: str) -> None:
        self.function = function.lstrip("/")

    def set_method(self, method: str) -> None:
        self.method = method.upper()

    def add_param(self, name: str, value: str) -> None:
        self._params[name] = str(value)

    def add_params(self, params: Mapping[str, str]) -> None:
        for name, value in params.items():
            self.add_param(name, value)

    def lookup_param(self, name: str) -> Optional[str]:
        return self._params.get(name)

    def remove_param(self, name: str) -> None:
        self._params.pop(name, None)

    @property
    def params(self) -> Dict[str, str]:
        return dict(self._params)

    def add_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def lookup_header(self, name: str) -> Optional[str]:
        return self._headers.get(name)

    @property
    def url(self) -> str:
        """Endpoint + function, with params in the query for query-style methods."""

        base = self.endpoint
        if self.function:
            base = f"{base}/{self.function}"
        if self.method in _QUERY_METHODS and self._params:
            return f"{base}?{urlencode(self._params)}"
        return base

    def to_message(self) -> Message:
        msg = Message(method=self.method, url=self.url, headers=dict(self._headers))
        if self.method not in _QUERY_METHODS and self._params:
            msg.body = urlencode(self._params).encode("utf-8")
            msg.add_header("Content-Type", "application/x-www-form-urlencoded")
        return msg

    def invoke(self) -> HttpResponse:
        """Execute the call synchronously.

        HTTP error statuses are returned in the response. Failures to reach
        the endpoint raise TransportError.
        """

        req = self.to_message().to_request()
        try:
            return perform(default_opener(), req, self.timeout)
        except (URLError, OSError, http.client.HTTPException) as e:
            raise TransportError(f"network error: {e}") from e


def new_rest_call(
    authorizer: Authorizer, config: Optional[GraphConfig] = None
) -> Optional[RestProxyCall]:
    """Create a call against the configured endpoint, stamped by `authorizer`.

    Returns None if `authorizer` lacks the authorizer capabilities. No
    network I/O happens here.
    """

    if not is_authorizer(authorizer):
        log.warning("new_rest_call: invalid authorizer %r", type(authorizer).__name__)
        return None

    cfg = config or GraphConfig()
    proxy = RestProxy(cfg.endpoint, timeout=cfg.timeout_sec)
    call = proxy.new_call()
    authorizer.process_call(call)
    return call
