from .candidate import (
    DEFAULT_CONTENT_TYPE,
    FileMetadata,
    UploadCandidate,
    mime_matches,
)

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "FileMetadata",
    "UploadCandidate",
    "mime_matches",
]
