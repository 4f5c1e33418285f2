from __future__ import annotations

import http.client
import json
import logging
import socket
import ssl
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from urllib.request import HTTPSHandler, OpenerDirector, Request, build_opener

log = logging.getLogger("restgraph.http")


class TransportStatus(IntEnum):
    """Status codes for sends that never produced an HTTP response.

    Values below 100 so they cannot collide with HTTP statuses.
    """

    NONE = 0
    CANCELLED = 1
    CANT_RESOLVE = 2
    CANT_CONNECT = 4
    SSL_FAILED = 6
    IO_ERROR = 7
    MALFORMED = 8


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    Security notes:
    - Treat `body_bytes` as untrusted.

    """

    status: int
    headers: Mapping[str, str]
    body_bytes: bytes

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))


@dataclass(slots=True)
class Message:
    """A raw outgoing HTTP request.

    Authorizers mutate it in place (headers, query parameters). Once sent,
    the response fields are filled by the session.
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    status_code: int = TransportStatus.NONE
    response_headers: Dict[str, str] = field(default_factory=dict)
    response_body: bytes = b""

    def add_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def add_query_param(self, key: str, value: str) -> None:
        """Append `key=value` to the URL query, replacing a previous `key`."""

        parts = urlsplit(self.url)
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != key]
        query.append((key, value))
        self.url = urlunsplit(parts._replace(query=urlencode(query)))

    def query_params(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query, keep_blank_values=True))

    def to_request(self) -> Request:
        req = Request(url=self.url, data=self.body or None, method=self.method)
        for name, value in self.headers.items():
            req.add_header(name, value)
        return req


def classify_url_error(err: BaseException) -> TransportStatus:
    """Map a transport exception onto a TransportStatus."""

    if isinstance(err, http.client.HTTPException):
        return TransportStatus.MALFORMED
    reason = getattr(err, "reason", err)
    if isinstance(reason, ssl.SSLError):
        return TransportStatus.SSL_FAILED
    if isinstance(reason, socket.gaierror):
        return TransportStatus.CANT_RESOLVE
    if isinstance(reason, (ConnectionRefusedError, socket.timeout, TimeoutError)):
        return TransportStatus.CANT_CONNECT
    if isinstance(reason, ValueError):
        return TransportStatus.MALFORMED
    return TransportStatus.IO_ERROR


def perform(opener: OpenerDirector, req: Request, timeout: float) -> HttpResponse:
    """Execute a request.

    HTTP error statuses are returned, not raised. Network failures raise
    URLError/OSError, and unparsable responses raise http.client.HTTPException.

    Security notes:
    - Uses default SSL context (verification ON).
    """

    try:
        with opener.open(req, timeout=timeout) as resp:
            body = resp.read()
            headers = {k: v for k, v in resp.headers.items()}
            return HttpResponse(status=int(resp.status), headers=headers, body_bytes=body)
    except HTTPError as e:
        body = e.read() if hasattr(e, "read") else b""
        headers = dict(getattr(e, "headers", {}) or {})
        return HttpResponse(
            status=int(getattr(e, "code", 0) or 0), headers=headers, body_bytes=body
        )


def default_opener() -> OpenerDirector:
    return build_opener(HTTPSHandler(context=ssl.create_default_context()))


class HttpSession:
    """Synchronous transport session.

    `send_message` blocks until the server answers or `timeout` expires.
    """

    def __init__(self, timeout: float = 30.0, opener: Optional[OpenerDirector] = None):
        self.timeout = float(timeout)
        self._opener = opener or default_opener()
        self._closed = False

    def send_message(self, message: Message) -> int:
        """Send `message` and return its status code.

        Transport failures are reported as a TransportStatus value.
        """

        if self._closed:
            raise RuntimeError("session is closed")
        try:
            resp = perform(self._opener, message.to_request(), self.timeout)
        except (URLError, OSError, ValueError, http.client.HTTPException) as e:
            status = classify_url_error(e)
            log.warning("Error sending message: %s", e, extra={"status_code": int(status)})
            message.status_code = status
            return int(status)

        message.status_code = resp.status
        message.response_headers = dict(resp.headers)
        message.response_body = resp.body_bytes
        log.debug(
            "message_sent",
            extra={"method": message.method, "status_code": resp.status},
        )
        return resp.status

    def close(self) -> None:
        self._closed = True
        self._opener = None  # type: ignore[assignment]

    @property
    def closed(self) -> bool:
        return self._closed
