from pathlib import Path

import pytest

from restgraph.errors import CandidateError, CandidateReadError
from restgraph.files import DEFAULT_CONTENT_TYPE, UploadCandidate, mime_matches


def test_for_path_builds_file_uri(tmp_path: Path) -> None:
    p = tmp_path / "my photo.jpg"
    p.write_bytes(b"x")
    c = UploadCandidate.for_path(p)
    assert c.scheme == "file"
    assert c.uri.startswith("file://")
    assert c.path == str(p)
    assert c.query_exists() is True


def test_parse_accepts_paths_and_uris(tmp_path: Path) -> None:
    assert UploadCandidate.parse(tmp_path / "a.png").has_uri_scheme("file")
    remote = UploadCandidate.parse("HTTPS://cdn.example.test/a.png")
    assert remote.has_uri_scheme("https")
    assert remote.path is None
    assert remote.query_exists() is False


def test_uri_requires_scheme() -> None:
    with pytest.raises(ValueError):
        UploadCandidate("relative/path.jpg")


def test_query_info_sniffs_content_type(photo: Path, tmp_path: Path) -> None:
    info = UploadCandidate.for_path(photo).query_info()
    assert info.display_name == "photo.jpg"
    assert info.content_type == "image/jpeg"
    assert info.size_bytes == 1024

    # Magic bytes win over a misleading extension.
    png = tmp_path / "really_png.jpg"
    png.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16)
    assert UploadCandidate.for_path(png).query_info().content_type == "image/png"


def test_query_info_falls_back_to_extension(tmp_path: Path) -> None:
    txt = tmp_path / "notes.txt"
    txt.write_text("hello\n", encoding="utf-8")
    assert UploadCandidate.for_path(txt).query_info().content_type == "text/plain"

    blob = tmp_path / "blob"
    blob.write_bytes(b"\x00\x01")
    assert UploadCandidate.for_path(blob).query_info().content_type == DEFAULT_CONTENT_TYPE


def test_query_info_failures(tmp_path: Path) -> None:
    with pytest.raises(CandidateError):
        UploadCandidate.for_path(tmp_path / "missing.jpg").query_info()
    with pytest.raises(CandidateError):
        UploadCandidate.for_path(tmp_path).query_info()
    with pytest.raises(CandidateError):
        UploadCandidate("https://cdn.example.test/a.jpg").query_info()


def test_load_contents_respects_cap(photo: Path) -> None:
    c = UploadCandidate.for_path(photo)
    assert c.load_contents() == photo.read_bytes()
    assert len(c.load_contents(max_bytes=1024)) == 1024
    with pytest.raises(CandidateReadError):
        c.load_contents(max_bytes=1023)


def test_load_contents_missing_file_is_read_error(tmp_path: Path) -> None:
    with pytest.raises(CandidateReadError):
        UploadCandidate.for_path(tmp_path / "gone.bin").load_contents()


def test_close_marks_candidate(photo: Path) -> None:
    c = UploadCandidate.for_path(photo)
    assert c.closed is False
    c.close()
    assert c.closed is True


def test_mime_matches_patterns() -> None:
    assert mime_matches("*", "image/png")
    assert mime_matches("*/*", "video/mp4")
    assert mime_matches("image/*", "IMAGE/PNG")
    assert mime_matches(" image/jpeg ", "image/jpeg")
    assert not mime_matches("image/*", "video/mp4")
    assert not mime_matches("image/png", "image/jpeg")
