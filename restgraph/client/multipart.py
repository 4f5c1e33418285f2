from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from restgraph.client.http import Message

FORM_MIME_TYPE_MULTIPART = "multipart/form-data"

BodyBytes = Union[bytes, memoryview]


@dataclass(slots=True)
class FormPart:
    """One part of a multipart form.

    `filename`/`content_type` are set only for file parts. `data` may be a
    memoryview borrowed from the caller; it is not copied until encoding.
    """

    name: str
    data: BodyBytes
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.filename is not None


class Multipart:
    """Ordered multipart/form-data body.

    Security notes:
    - The whole body is encoded in memory. Callers cap the size of file parts.
    """

    def __init__(self, mime_type: str = FORM_MIME_TYPE_MULTIPART, boundary: Optional[str] = None):
        self.mime_type = mime_type
        self.boundary = boundary or "----restgraph-" + uuid.uuid4().hex
        self._parts: List[FormPart] = []
        self._freed = False

    @property
    def parts(self) -> Tuple[FormPart, ...]:
        return tuple(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def append_form_file(
        self, name: str, filename: str, content_type: str, data: BodyBytes
    ) -> None:
        self._check_live()
        self._parts.append(
            FormPart(name=name, data=data, filename=filename, content_type=content_type)
        )

    def append_form_string(self, name: str, value: str) -> None:
        self._check_live()
        self._parts.append(FormPart(name=name, data=str(value).encode("utf-8")))

    def content_type_header(self) -> str:
        return f"{self.mime_type}; boundary={self.boundary}"

    def encode(self) -> bytes:
        """Serialize the body. Returns a fresh bytes object."""

        self._check_live()
        crlf = b"\r\n"
        out: List[BodyBytes] = []
        for part in self._parts:
            out.append(f"--{self.boundary}".encode("utf-8") + crlf)
            disp = f'Content-Disposition: form-data; name="{_quote(part.name)}"'
            if part.is_file:
                disp += f'; filename="{_quote(part.filename or "")}"'
            out.append(disp.encode("utf-8") + crlf)
            if part.is_file:
                ct = part.content_type or "application/octet-stream"
                out.append(f"Content-Type: {ct}".encode("utf-8") + crlf)
            out.append(crlf)
            out.append(part.data)
            out.append(crlf)
        out.append(f"--{self.boundary}--".encode("utf-8") + crlf)
        return b"".join(out)

    def free(self) -> None:
        """Drop every part. The multipart cannot be used afterwards."""

        self._parts.clear()
        self._freed = True

    def _check_live(self) -> None:
        if self._freed:
            raise RuntimeError("multipart body has been freed")


def _quote(value: str) -> str:
    # Field names and filenames must not break out of the quoted header value.
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\r", " ").replace("\n", " ")


def form_request_from_multipart(url: str, multipart: Multipart) -> Message:
    """Build a POST Message whose body is the serialized `multipart`."""

    body = multipart.encode()
    return Message(
        method="POST",
        url=url,
        headers={
            "Content-Type": multipart.content_type_header(),
            "Content-Length": str(len(body)),
        },
        body=body,
    )
