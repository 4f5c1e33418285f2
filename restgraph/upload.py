from __future__ import annotations

import logging
from contextlib import ExitStack
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from restgraph.auth.authorizer import Authorizer, is_authorizer
from restgraph.client.http import HttpSession, TransportStatus
from restgraph.client.multipart import FormPart, Multipart, form_request_from_multipart
from restgraph.config import GraphConfig
from restgraph.errors import CandidateError, CandidateReadError
from restgraph.files.candidate import FileMetadata, UploadCandidate, mime_matches

log = logging.getLogger("restgraph.upload")

FILE_FIELD = "file"

SessionFactory = Callable[[GraphConfig], Any]


class UploadState(str, Enum):
    START = "start"
    METADATA_FETCHED = "metadata_fetched"
    CONTENTS_READ = "contents_read"
    SESSION_OPEN = "session_open"
    BODY_BUILT = "body_built"
    MESSAGE_AUTHORIZED = "message_authorized"
    SENT = "sent"
    CLEANED = "cleaned"


def is_uploadable(
    candidate: UploadCandidate, allowed_mime_types: Optional[Iterable[str]] = None
) -> bool:
    """Return True if `candidate` is an existing local file.

    A remote URI is never uploadable. With a non-empty `allowed_mime_types`,
    the extension-based content type must also match one of the patterns.
    Only metadata is consulted; the file is not read.
    """

    if not (candidate.query_exists() and candidate.has_uri_scheme("file")):
        return False
    patterns = [p for p in (allowed_mime_types or ()) if p.strip()]
    if not patterns:
        return True
    mime = candidate.guess_content_type()
    return any(mime_matches(p, mime) for p in patterns)


def _default_session(config: GraphConfig) -> HttpSession:
    return HttpSession(timeout=config.timeout_sec)


class UploadPipeline:
    """One multipart upload of a local file plus string form fields.

    The pipeline owns `candidate` once constructed and closes it exactly
    once when `run` returns, whatever the outcome. Callers are expected to
    check `is_uploadable` first; the pipeline does not re-check it and a bad
    candidate surfaces as a metadata failure.

    Resources are released in reverse acquisition order, and only those
    that were acquired:
      body -> contents view -> session -> candidate

    After `run`, `parts` still describes the form that was sent. The file
    part's `data` is the released contents view and raises ValueError if
    read; string parts keep their data.

    Security notes:
    - File bytes and credentials are never logged.

    """

    def __init__(
        self,
        authorizer: Authorizer,
        candidate: UploadCandidate,
        params: Optional[Mapping[str, str]] = None,
        *,
        config: Optional[GraphConfig] = None,
        session_factory: Optional[SessionFactory] = None,
        node_id: str = "me",
    ):
        self.authorizer = authorizer
        self.candidate = candidate
        self.params = dict(params or {})
        self.config = config or GraphConfig()
        self.node_id = node_id
        self._session_factory = session_factory or _default_session

        self.history: List[UploadState] = [UploadState.START]
        self.metadata: Optional[FileMetadata] = None
        # File part data is released when run returns.
        self.parts: Tuple[FormPart, ...] = ()
        self.status: int = TransportStatus.NONE
        self._ran = False

    @property
    def state(self) -> UploadState:
        return self.history[-1]

    def _advance(self, state: UploadState) -> None:
        self.history.append(state)

    def run(self) -> int:
        """Run the upload. Returns the send status, or 0 if nothing was sent."""

        if self._ran:
            raise RuntimeError("upload pipeline can only run once")
        self._ran = True

        with ExitStack() as stack:
            stack.callback(self._advance, UploadState.CLEANED)
            stack.callback(self.candidate.close)

            if not is_authorizer(self.authorizer):
                log.warning("upload: invalid authorizer %r", type(self.authorizer).__name__)
                return int(TransportStatus.NONE)

            url = self.config.upload_url(self.node_id)

            try:
                self.metadata = self.candidate.query_info()
            except CandidateError as e:
                log.warning("Error while retrieving the file info: %s", e)
                return int(TransportStatus.NONE)
            self._advance(UploadState.METADATA_FETCHED)

            try:
                contents = self.candidate.load_contents(max_bytes=self.config.max_upload_bytes)
            except CandidateReadError as e:
                log.warning("Error in file loading: %s", e)
                return int(TransportStatus.NONE)
            self._advance(UploadState.CONTENTS_READ)

            session = self._session_factory(self.config)
            stack.callback(session.close)
            self._advance(UploadState.SESSION_OPEN)

            # Borrowed by the body; must outlive the send.
            view = memoryview(contents)
            stack.callback(view.release)

            multipart = Multipart()
            stack.callback(multipart.free)
            multipart.append_form_file(
                FILE_FIELD, self.metadata.display_name, self.metadata.content_type, view
            )
            # Form field order is not significant to the endpoint.
            for key, value in self.params.items():
                multipart.append_form_string(key, value)
            self.parts = multipart.parts
            self._advance(UploadState.BODY_BUILT)

            message = form_request_from_multipart(url, multipart)
            self.authorizer.process_message(message)
            self._advance(UploadState.MESSAGE_AUTHORIZED)

            self.status = int(session.send_message(message))
            self._advance(UploadState.SENT)

            log.info(
                "upload_sent",
                extra={
                    "status_code": self.status,
                    "size_bytes": len(contents),
                    "field_count": len(self.params),
                },
            )
            return self.status


def upload_file(
    authorizer: Authorizer,
    candidate: UploadCandidate,
    params: Optional[Mapping[str, str]] = None,
    *,
    config: Optional[GraphConfig] = None,
    session_factory: Optional[SessionFactory] = None,
    node_id: str = "me",
) -> int:
    """Upload `candidate` as the `file` form field, with `params` as extra fields.

    Returns the transport status of the send, or 0 if the upload failed
    before anything was sent.
    """

    return UploadPipeline(
        authorizer,
        candidate,
        params,
        config=config,
        session_factory=session_factory,
        node_id=node_id,
    ).run()
