from __future__ import annotations

import socket
import threading
import time
from pathlib import Path

import pytest
import uvicorn
from fastapi import FastAPI, HTTPException
from starlette.requests import Request

from restgraph.auth import AccessTokenAuthorizer, BearerTokenAuthorizer, appsecret_proof
from restgraph.client.call import new_rest_call
from restgraph.config import GraphConfig
from restgraph.files import UploadCandidate
from restgraph.upload import UploadPipeline, UploadState, is_uploadable, upload_file


def _graph_app(received: dict) -> FastAPI:
    """A tiny stand-in for a graph API: token-checked GET and photo upload."""

    app = FastAPI()

    def _token(request: Request) -> str:
        token = request.query_params.get("access_token")
        auth = request.headers.get("authorization", "")
        if not token and auth.startswith("Bearer "):
            token = auth[len("Bearer ") :]
        if token != "tok":
            raise HTTPException(status_code=401, detail="invalid token")
        return token

    @app.get("/v1/{node_id}")
    async def node(node_id: str, request: Request):
        _token(request)
        return {"id": node_id, "proof": request.query_params.get("appsecret_proof")}

    @app.post("/v1/{node_id}/photos")
    async def photos(node_id: str, request: Request):
        _token(request)
        form = await request.form()
        upload = form["file"]
        received["node_id"] = node_id
        received["filename"] = upload.filename
        received["content_type"] = upload.content_type
        received["data"] = await upload.read()
        received["fields"] = {k: v for k, v in form.items() if k != "file"}
        received["proof"] = request.query_params.get("appsecret_proof")
        return {"id": "photo-1", "post_id": f"{node_id}_1"}

    return app


@pytest.fixture
def graph_server(monkeypatch):
    for name in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")

    received: dict = {}
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]

    server = uvicorn.Server(
        uvicorn.Config(_graph_app(received), log_level="warning", lifespan="off")
    )
    thread = threading.Thread(target=server.run, kwargs={"sockets": [sock]}, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline or not thread.is_alive():
            pytest.fail("graph test server did not start")
        time.sleep(0.02)

    yield GraphConfig(endpoint=f"http://127.0.0.1:{port}/v1", timeout_sec=10), received

    server.should_exit = True
    thread.join(timeout=10)
    sock.close()


def test_upload_roundtrip_with_signed_token(graph_server, photo: Path) -> None:
    cfg, received = graph_server
    candidate = UploadCandidate.for_path(photo)
    assert is_uploadable(candidate)

    pipeline = UploadPipeline(
        AccessTokenAuthorizer("tok", app_secret="sec"),
        candidate,
        {"message": "hello", "published": "false", "place": "42"},
        config=cfg,
    )
    status = pipeline.run()

    assert status == 200
    assert UploadState.SENT in pipeline.history
    assert len(pipeline.parts) == 4
    assert received["node_id"] == "me"
    assert received["filename"] == "photo.jpg"
    assert received["content_type"] == "image/jpeg"
    assert received["data"] == photo.read_bytes()
    assert received["fields"] == {"message": "hello", "published": "false", "place": "42"}
    assert received["proof"] == appsecret_proof("tok", "sec")


def test_upload_with_bearer_token_to_other_node(graph_server, photo: Path) -> None:
    cfg, received = graph_server
    status = upload_file(
        BearerTokenAuthorizer("tok"), UploadCandidate.for_path(photo), config=cfg, node_id="album-7"
    )
    assert status == 200
    assert received["node_id"] == "album-7"
    assert received["fields"] == {}


def test_rejected_token_status_is_returned(graph_server, photo: Path) -> None:
    cfg, received = graph_server
    status = upload_file(AccessTokenAuthorizer("wrong"), UploadCandidate.for_path(photo), config=cfg)
    assert status == 401
    assert received == {}


def test_rest_call_roundtrip(graph_server) -> None:
    cfg, _ = graph_server
    call = new_rest_call(AccessTokenAuthorizer("tok", app_secret="sec"), cfg)
    call.set_function("me")

    r = call.invoke()

    assert r.status == 200
    assert r.json() == {"id": "me", "proof": appsecret_proof("tok", "sec")}


def test_unreachable_endpoint_reports_transport_status(photo: Path, monkeypatch) -> None:
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")
    # Bind then close to get a port nothing listens on.
    s = socket.socket()
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()

    cfg = GraphConfig(endpoint=f"http://127.0.0.1:{port}/v1", timeout_sec=5)
    status = upload_file(AccessTokenAuthorizer("tok"), UploadCandidate.for_path(photo), config=cfg)

    assert 0 < status < 100
