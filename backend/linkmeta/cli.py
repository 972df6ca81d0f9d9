"""CLI tool for LinkMeta: inspect link previews from the command line.

Usage:
    python -m linkmeta.cli inspect https://example.com/blog/post
    python -m linkmeta.cli inspect youtu.be/dQw4w9WgXcQ -o text
    python -m linkmeta.cli favicon https://example.com
    python -m linkmeta.cli serve --port 3001
"""

import argparse
import asyncio
import json
import sys


def _setup_logging(verbose: bool = False):
    from linkmeta.core.logging_config import configure_logging

    # stdout carries the command output
    configure_logging(
        log_format="text",
        log_level="DEBUG" if verbose else "WARNING",
        stream=sys.stderr,
    )


def _print_record(data: dict, output: str):
    if output == "json":
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return
    for key, value in data.items():
        if value in (None, [], ""):
            continue
        if isinstance(value, list):
            value = ", ".join(value)
        print(f"{key:>16}: {value}")


async def _cmd_inspect(args) -> int:
    """Extract metadata for a single URL, bypassing the cache."""
    from linkmeta.core.cache import build_caches
    from linkmeta.services.fetcher import close_http_client, get_http_client
    from linkmeta.services.metadata import MetadataService, build_fallback_record
    from linkmeta.services.urls import is_valid_url, with_scheme

    if not is_valid_url(args.url):
        print(f"Invalid URL format: {args.url}", file=sys.stderr)
        return 2

    client = await get_http_client()
    service = MetadataService(build_caches("memory"), client)
    try:
        record = await service.scrape(args.url)
    except Exception as e:
        print(f"Failed to scrape metadata: {type(e).__name__}: {e}", file=sys.stderr)
        _print_record(build_fallback_record(with_scheme(args.url)).to_json(), args.output)
        return 1
    finally:
        await close_http_client()

    _print_record(record.to_json(), args.output)
    return 0


async def _cmd_favicon(args) -> int:
    """Resolve the best favicon for a URL."""
    from linkmeta.services.favicon import find_best_favicon
    from linkmeta.services.fetcher import close_http_client, get_http_client
    from linkmeta.services.urls import is_valid_url, with_scheme

    if not is_valid_url(args.url):
        print(f"Invalid URL format: {args.url}", file=sys.stderr)
        return 2

    client = await get_http_client()
    try:
        favicon_url = await find_best_favicon(with_scheme(args.url), client)
    finally:
        await close_http_client()

    if not favicon_url:
        print("Favicon not found", file=sys.stderr)
        return 1
    print(favicon_url)
    return 0


def _cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("linkmeta.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="linkmeta",
        description="LinkMeta CLI: extract link preview metadata and favicons",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-o", "--output", default="json",
        choices=["json", "text"],
        help="Output format (default: json)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # --- inspect ---
    inspect_parser = subparsers.add_parser("inspect", help="Extract metadata for a URL")
    inspect_parser.add_argument("url", help="URL to inspect")

    # --- favicon ---
    favicon_parser = subparsers.add_parser("favicon", help="Resolve the favicon of a URL")
    favicon_parser.add_argument("url", help="Page or site URL")

    # --- serve ---
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=3001, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _setup_logging(args.verbose)

    if args.command == "inspect":
        sys.exit(asyncio.run(_cmd_inspect(args)))
    elif args.command == "favicon":
        sys.exit(asyncio.run(_cmd_favicon(args)))
    elif args.command == "serve":
        sys.exit(_cmd_serve(args))


if __name__ == "__main__":
    main()
