from __future__ import annotations

import hashlib
import hmac
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from restgraph.client.call import RestProxyCall
    from restgraph.client.http import Message


def appsecret_proof(access_token: str, app_secret: str) -> str:
    """HMAC-SHA256 of the access token keyed with the app secret (hex)."""

    return hmac.new(
        app_secret.encode("utf-8"), access_token.encode("utf-8"), hashlib.sha256
    ).hexdigest()


class AccessTokenAuthorizer:
    """Authorize with an `access_token` request parameter.

    If `app_secret` is given, every request is also signed with an
    `appsecret_proof` parameter.

    Security notes:
    - The token travels in the query string of upload messages; only use
      https endpoints.
    - `repr` never shows the token.

    """

    def __init__(self, access_token: str, app_secret: Optional[str] = None):
        if not isinstance(access_token, str) or not access_token.strip():
            raise ValueError("access_token must be a non-empty string")
        self._access_token = access_token.strip()
        self._proof = appsecret_proof(self._access_token, app_secret) if app_secret else None

    def __repr__(self) -> str:
        return f"AccessTokenAuthorizer(signed={self._proof is not None})"

    def _params(self) -> dict:
        params = {"access_token": self._access_token}
        if self._proof is not None:
            params["appsecret_proof"] = self._proof
        return params

    def process_call(self, call: "RestProxyCall") -> None:
        call.add_params(self._params())

    def process_message(self, message: "Message") -> None:
        for key, value in self._params().items():
            message.add_query_param(key, value)


class BearerTokenAuthorizer:
    """Authorize with an `Authorization: Bearer <token>` header."""

    def __init__(self, token: str):
        if not isinstance(token, str) or not token.strip():
            raise ValueError("token must be a non-empty string")
        self._token = token.strip()

    def __repr__(self) -> str:
        return "BearerTokenAuthorizer()"

    def process_call(self, call: "RestProxyCall") -> None:
        call.add_header("Authorization", f"Bearer {self._token}")

    def process_message(self, message: "Message") -> None:
        message.add_header("Authorization", f"Bearer {self._token}")
