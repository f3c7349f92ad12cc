"""
Command line entry point.

Usage:
    storyboard serve [--port PORT] [--host HOST] [--log-level LEVEL]
    storyboard export [--output FILE] [--local]
    storyboard info [--local]

Environment variables:
    SB_API_URL: Blob store URL (default: http://127.0.0.1:8766)
    SB_TOKEN: Bearer token for the blob store
    SB_PRINCIPAL: Principal name, also the key derivation salt
    SB_PASSPHRASE: Passphrase for the storyboard key (required for export/info)
    SB_STORE_PATH: Local blob file used with --local
    SB_LOG_LEVEL: Logging level (default: INFO)
"""

import argparse
import logging
import os
import sys
from collections import Counter

from .config import StoryboardConfig
from .core import CryptoCodec, NodeKind
from .gateway import FileGateway, HttpGateway
from .session import EditingSession

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None):
    level = (level or os.getenv("SB_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


def _open_session(config: StoryboardConfig, local: bool) -> EditingSession:
    if not config.passphrase:
        raise SystemExit("SB_PASSPHRASE is required to decrypt the storyboard")

    if local:
        gateway = FileGateway(config.store_path)
    else:
        if not config.token:
            raise SystemExit("SB_TOKEN is required for the remote store (or pass --local)")
        gateway = HttpGateway(config.api_url, config.token, timeout=config.http_timeout)

    codec = CryptoCodec.from_passphrase(config.passphrase, salt=config.principal)
    session = EditingSession(gateway, codec, config)
    session.load()
    for notice in session.notices:
        print(f"! {notice}", file=sys.stderr)
    return session


def cmd_serve(args) -> int:
    if args.port:
        os.environ["SB_HTTP_PORT"] = str(args.port)
    if args.host:
        os.environ["SB_HTTP_HOST"] = args.host
    if args.log_level:
        os.environ["SB_LOG_LEVEL"] = args.log_level.upper()

    port = int(os.getenv("SB_HTTP_PORT", "8766"))
    host = os.getenv("SB_HTTP_HOST", "127.0.0.1")
    log_level = os.getenv("SB_LOG_LEVEL", "INFO").lower()

    print(f"Starting Storyboard blob store on {host}:{port}")
    print("Press Ctrl+C to stop")

    try:
        import uvicorn
        from .blobstore.app import app

        uvicorn.run(app, host=host, port=port, log_level=log_level)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    return 0


def cmd_export(args) -> int:
    config = StoryboardConfig.from_env()
    session = _open_session(config, args.local)
    try:
        text = session.export(args.output)
    finally:
        session.close(flush=False)

    if args.output is None:
        print(text)
    return 0


def cmd_info(args) -> int:
    config = StoryboardConfig.from_env()
    session = _open_session(config, args.local)
    try:
        document = session.document
        kinds = Counter(node["kind"] for node in document.nodes)
        print(f"Document: {session.document_id or '(none)'}")
        print(f"Nodes: {len(document)}")
        for kind in NodeKind:
            print(f"  {kind.value}: {kinds.get(kind.value, 0)}")
        print(f"Edges: {len(document.edges)}")
    finally:
        session.close(flush=False)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="storyboard", description="Encrypted storyboard graph")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the blob store service")
    serve.add_argument("--port", type=int, default=None, help="Server port (default: 8766)")
    serve.add_argument("--host", default=None, help="Server host (default: 127.0.0.1)")
    serve.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    serve.set_defaults(func=cmd_serve)

    export = subparsers.add_parser("export", help="Decrypt the latest storyboard to plain JSON")
    export.add_argument("--output", "-o", default=None, help="Write to file instead of stdout")
    export.add_argument("--local", action="store_true", help="Use the local blob file")
    export.set_defaults(func=cmd_export)

    info = subparsers.add_parser("info", help="Summarize the latest storyboard")
    info.add_argument("--local", action="store_true", help="Use the local blob file")
    info.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)
    configure_logging(getattr(args, "log_level", None))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
