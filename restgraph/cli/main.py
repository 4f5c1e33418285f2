from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import Dict, List, Optional

from restgraph.auth import AccessTokenAuthorizer, Authorizer, BearerTokenAuthorizer
from restgraph.client.call import new_rest_call
from restgraph.config import GraphConfig, env_credentials
from restgraph.errors import ConfigError, TransportError
from restgraph.files import UploadCandidate
from restgraph.upload import is_uploadable, upload_file


def _print_json(obj: object) -> None:
    """Print JSON to stdout."""
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _parse_params(items: Optional[List[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"expected KEY=VALUE, got {item!r}")
        out[key] = value
    return out


def _config(args: argparse.Namespace) -> GraphConfig:
    cfg = GraphConfig.from_env()
    overrides = {}
    if args.endpoint:
        overrides["endpoint"] = args.endpoint
    if args.timeout is not None:
        overrides["timeout_sec"] = args.timeout
    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def _authorizer(args: argparse.Namespace) -> Authorizer:
    """Build an authorizer from flags, falling back to the environment.

    Security notes:
    - Prefer RESTGRAPH_ACCESS_TOKEN over --token to keep secrets out of
      shell history.

    """

    env_token, env_secret = env_credentials()
    token = args.token or env_token
    if not token:
        raise ValueError("an access token is required (--token or RESTGRAPH_ACCESS_TOKEN)")
    if args.bearer:
        return BearerTokenAuthorizer(token)
    return AccessTokenAuthorizer(token, app_secret=args.app_secret or env_secret)


def cmd_check(args: argparse.Namespace) -> int:
    """Report whether a file can be uploaded."""
    cfg = _config(args)
    try:
        candidate = UploadCandidate.parse(args.file)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    allowed = set(args.allow_mime or []) or cfg.allowed_mime_types
    ok = is_uploadable(candidate, allowed)
    _print_json(
        {
            "uri": candidate.uri,
            "uploadable": ok,
            "content_type": candidate.guess_content_type(),
        }
    )
    return 0 if ok else 1


def cmd_upload(args: argparse.Namespace) -> int:
    """Upload a file as a multipart form.

    Exit codes:
      0  2xx status
      2  rejected locally or non-2xx status

    """
    cfg = _config(args)
    try:
        auth = _authorizer(args)
        params = _parse_params(args.param)
        candidate = UploadCandidate.parse(args.file)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if not is_uploadable(candidate, cfg.allowed_mime_types):
        print(f"error: not an uploadable local file: {args.file}", file=sys.stderr)
        return 2

    status = upload_file(auth, candidate, params, config=cfg, node_id=args.node_id)
    _print_json({"status": status, "file": os.path.basename(args.file)})
    return 0 if 200 <= status < 300 else 2


def cmd_get(args: argparse.Namespace) -> int:
    """Call GET <endpoint>/<path>."""
    cfg = _config(args)
    try:
        auth = _authorizer(args)
        params = _parse_params(args.param)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    call = new_rest_call(auth, cfg)
    if call is None:
        print("error: could not build call", file=sys.stderr)
        return 2
    call.set_function(args.path)
    call.add_params(params)
    try:
        r = call.invoke()
    except TransportError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    if r.status >= 400:
        print(r.body_bytes.decode("utf-8", errors="replace"), file=sys.stderr)
        return 2
    try:
        _print_json(r.json())
    except ValueError:
        print(r.body_bytes.decode("utf-8", errors="replace"))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="restgraph", description="Graph API client")
    p.add_argument("--endpoint", default=None, help="API root (default: RESTGRAPH_ENDPOINT)")
    p.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    p.add_argument("--token", default=None, help="Access token (default: RESTGRAPH_ACCESS_TOKEN)")
    p.add_argument("--app-secret", default=None, help="Sign requests with appsecret_proof")
    p.add_argument(
        "--bearer", action="store_true", help="Send the token as an Authorization header"
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    cp = sub.add_parser("check", help="Check whether a file can be uploaded")
    cp.add_argument("file", help="Local path or URI")
    cp.add_argument(
        "--allow-mime", action="append", default=None, help="Allowed MIME pattern (repeatable)"
    )
    cp.set_defaults(func=cmd_check)

    up = sub.add_parser("upload", help="Upload a file (multipart/form-data)")
    up.add_argument("file", help="Path to local file")
    up.add_argument(
        "--param", action="append", default=None, help="Extra form field KEY=VALUE (repeatable)"
    )
    up.add_argument("--node-id", default="me", help="Target node for the upload path")
    up.set_defaults(func=cmd_upload)

    gp = sub.add_parser("get", help="GET a resource path")
    gp.add_argument("path", help="Resource path, e.g. me/albums")
    gp.add_argument(
        "--param", action="append", default=None, help="Query parameter KEY=VALUE (repeatable)"
    )
    gp.set_defaults(func=cmd_get)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        level=os.environ.get("RESTGRAPH_LOG_LEVEL", "WARNING").upper(),
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
