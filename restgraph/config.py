from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from restgraph.errors import ConfigError

DEFAULT_ENDPOINT = "https://graph.facebook.com/v2.10"
DEFAULT_UPLOAD_PATH = "/{node_id}/photos"


@dataclass(frozen=True, slots=True)
class GraphConfig:
    """Where and how requests are sent.

    Every call is rooted at `endpoint`. Uploads go to `upload_path`, a
    template formatted with the target node id.

    Security notes:
    - Keep credentials out of this object; they belong to an authorizer.

    """

    endpoint: str = DEFAULT_ENDPOINT
    upload_path: str = DEFAULT_UPLOAD_PATH
    timeout_sec: float = 30.0
    max_upload_bytes: int = 25 * 1024 * 1024
    # Empty means "any content type".
    allowed_mime_types: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        endpoint = (self.endpoint or "").strip().rstrip("/")
        if not endpoint.startswith(("https://", "http://")):
            raise ConfigError(f"endpoint must be an http(s) URL: {self.endpoint!r}")
        if "{node_id}" not in self.upload_path:
            raise ConfigError("upload_path must contain a {node_id} placeholder")
        if self.max_upload_bytes <= 0:
            raise ConfigError("max_upload_bytes must be positive")
        object.__setattr__(self, "endpoint", endpoint)
        object.__setattr__(self, "allowed_mime_types", frozenset(self.allowed_mime_types))

    def upload_url(self, node_id: str = "me") -> str:
        """Return the absolute upload URL for `node_id`."""

        path = self.upload_path.format(node_id=node_id)
        return self.endpoint + "/" + path.lstrip("/")

    @classmethod
    def from_env(cls) -> "GraphConfig":
        """Build a config from RESTGRAPH_* environment variables.

        Unset or malformed numeric values fall back to defaults.
        """

        return cls(
            endpoint=os.environ.get("RESTGRAPH_ENDPOINT", "").strip() or DEFAULT_ENDPOINT,
            upload_path=os.environ.get("RESTGRAPH_UPLOAD_PATH", "").strip() or DEFAULT_UPLOAD_PATH,
            timeout_sec=_env_float("RESTGRAPH_TIMEOUT_SEC", 30.0),
            max_upload_bytes=_env_int("RESTGRAPH_MAX_UPLOAD_BYTES", 25 * 1024 * 1024),
            allowed_mime_types=_env_csv("RESTGRAPH_ALLOWED_MIME_TYPES"),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError:
        return float(default)


def _env_csv(name: str) -> FrozenSet[str]:
    raw = os.environ.get(name, "")
    return frozenset(p.strip().lower() for p in raw.split(",") if p.strip())


def env_credentials() -> tuple[Optional[str], Optional[str]]:
    """Return (access_token, app_secret) from the environment, if set."""

    token = os.environ.get("RESTGRAPH_ACCESS_TOKEN", "").strip() or None
    secret = os.environ.get("RESTGRAPH_APP_SECRET", "").strip() or None
    return token, secret
