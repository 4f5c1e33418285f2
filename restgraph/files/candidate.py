from __future__ import annotations

import fnmatch
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlsplit
from urllib.request import url2pathname

from restgraph.errors import CandidateError, CandidateReadError

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class FileMetadata:
    """Read-only snapshot of a candidate, taken once per upload."""

    display_name: str
    content_type: str
    size_bytes: int


class UploadCandidate:
    """Reference to a resource that may be uploaded.

    Built from a local path or from a URI. Only `file` URIs have a local
    path; anything else is kept so it can be rejected by the precondition
    check.

    Security notes:
    - Existence of remote resources is never probed (no network I/O).
    - File contents are untrusted; content sniffing reads a bounded prefix.

    """

    def __init__(self, uri: str):
        parts = urlsplit(uri)
        if not parts.scheme:
            raise ValueError(f"not a URI: {uri!r}")
        self.uri = uri
        self.scheme = parts.scheme.lower()
        self.path: Optional[str] = (
            url2pathname(parts.path) if self.scheme == "file" else None
        )
        self._closed = False

    @classmethod
    def for_path(cls, path: Union[str, Path]) -> "UploadCandidate":
        return cls(Path(os.path.abspath(os.fspath(path))).as_uri())

    @classmethod
    def parse(cls, value: Union[str, Path]) -> "UploadCandidate":
        """Accept either a URI (`scheme://...`) or a plain local path."""

        text = os.fspath(value)
        if "://" in text:
            return cls(text)
        return cls.for_path(text)

    def __repr__(self) -> str:
        return f"UploadCandidate({self.uri!r})"

    def has_uri_scheme(self, scheme: str) -> bool:
        return self.scheme == scheme.lower()

    def query_exists(self) -> bool:
        if self.path is None:
            return False
        return os.path.exists(self.path)

    def guess_content_type(self) -> str:
        """Extension-based content type. Does not touch the file."""

        name = self.path or urlsplit(self.uri).path
        guessed, _enc = mimetypes.guess_type(name)
        return guessed or DEFAULT_CONTENT_TYPE

    def query_info(self, *, prefix_bytes: int = 512) -> FileMetadata:
        """Return display name, content type and size.

        Raises CandidateError if the candidate is not a readable local file.
        """

        if self.path is None:
            raise CandidateError(f"operation not supported for scheme {self.scheme!r}")
        try:
            st = os.stat(self.path)
        except OSError as e:
            raise CandidateError(f"{e.strerror or e}: {self.path}") from e
        if not os.path.isfile(self.path):
            raise CandidateError(f"not a regular file: {self.path}")

        content_type = self.guess_content_type()
        try:
            with open(self.path, "rb") as f:
                head = f.read(prefix_bytes)
        except OSError:
            # Keep the extension guess.
            head = b""
        content_type = _magic_mime(head) or content_type

        return FileMetadata(
            display_name=os.path.basename(self.path),
            content_type=content_type,
            size_bytes=int(st.st_size),
        )

    def load_contents(self, *, max_bytes: Optional[int] = None) -> bytes:
        """Read the whole file.

        Raises CandidateReadError on I/O errors or if the file exceeds
        `max_bytes`.
        """

        if self.path is None:
            raise CandidateReadError(f"operation not supported for scheme {self.scheme!r}")
        try:
            if max_bytes is not None:
                size = os.stat(self.path).st_size
                if size > max_bytes:
                    raise CandidateReadError(
                        f"file too large for upload cap: {size} > {max_bytes}"
                    )
            with open(self.path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise CandidateReadError(f"{e.strerror or e}: {self.path}") from e
        if max_bytes is not None and len(data) > max_bytes:
            raise CandidateReadError("file too large for upload cap")
        return data

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


def _magic_mime(prefix: bytes) -> Optional[str]:
    """Detect mime from common magic headers."""

    if prefix.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if prefix.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if prefix.startswith(b"GIF87a") or prefix.startswith(b"GIF89a"):
        return "image/gif"
    if prefix.startswith(b"RIFF") and prefix[8:12] == b"WEBP":
        return "image/webp"
    if prefix.startswith(b"%PDF-"):
        return "application/pdf"
    if len(prefix) >= 12 and prefix[4:8] == b"ftyp":
        return "video/mp4"
    return None


def mime_matches(pattern: str, mime: str) -> bool:
    """Match a mime against a simple pattern.

    Supported patterns:
    - "*" or "*/*" matches all
    - "type/*" matches any subtype
    - exact match

    """

    pat = pattern.strip().lower()
    m = mime.strip().lower()

    if pat in {"*", "*/*"}:
        return True
    if "*" in pat:
        return fnmatch.fnmatchcase(m, pat)
    return pat == m
