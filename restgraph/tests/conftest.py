from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import pytest

from restgraph.client.http import Message
from restgraph.config import GraphConfig
from restgraph.files import UploadCandidate

JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00"


class RecordingAuthorizer:
    """Authorizer that stamps a header and remembers what it processed."""

    def __init__(self) -> None:
        self.calls: List[object] = []
        self.messages: List[Message] = []

    def process_call(self, call) -> None:
        self.calls.append(call)
        call.add_header("Authorization", "Test token")

    def process_message(self, message: Message) -> None:
        self.messages.append(message)
        message.add_header("Authorization", "Test token")


@dataclass
class FakeSession:
    status: int = 200
    sent: List[Message] = field(default_factory=list)
    closed: bool = False

    def send_message(self, message: Message) -> int:
        assert not self.closed
        self.sent.append(message)
        message.status_code = self.status
        return self.status

    def close(self) -> None:
        self.closed = True


class SessionRecorder:
    """session_factory that records every session it opens."""

    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.sessions: List[FakeSession] = []

    def __call__(self, config: GraphConfig) -> FakeSession:
        s = FakeSession(status=self.status)
        self.sessions.append(s)
        return s


class CountingCandidate(UploadCandidate):
    def __init__(self, uri: str):
        super().__init__(uri)
        self.close_count = 0

    def close(self) -> None:
        self.close_count += 1
        super().close()


@pytest.fixture
def authorizer() -> RecordingAuthorizer:
    return RecordingAuthorizer()


@pytest.fixture
def sessions() -> SessionRecorder:
    return SessionRecorder()


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    p = tmp_path / "photo.jpg"
    p.write_bytes(JPEG_HEADER + b"\x00" * (1024 - len(JPEG_HEADER)))
    return p


@pytest.fixture
def config() -> GraphConfig:
    return GraphConfig(endpoint="https://graph.example.test/v3.0")
