"""CLI entrypoint for refresh runs, cache inspection and the trigger API."""

from __future__ import annotations

import argparse
import asyncio
import json

from utils.logger import LOG_LEVELS, configure_package_loggers


def _print(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


async def _refresh() -> dict:
    from orchestrator.service import RefreshService
    from pipeline.refresh import build_refresh_pipeline

    service = RefreshService(build_refresh_pipeline())
    try:
        run = await service.run_now()
    finally:
        await service.aclose()
    return run.model_dump(mode="json")


async def _freshness() -> list:
    from pipeline.refresh import build_refresh_pipeline

    pipeline = build_refresh_pipeline()
    try:
        return await pipeline.freshness()
    finally:
        await pipeline.aclose()


async def _read_cache(command: str):
    from storage import get_content_cache

    cache = get_content_cache()
    try:
        if command == "top-ten":
            return await cache.get_top_ten_stories()
        if command == "compact":
            return await cache.get_compact_content()
        return await cache.get_content_stats()
    finally:
        await cache.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Content refresh pipeline CLI")
    parser.add_argument("--log-level", default="INFO", type=str.upper, choices=LOG_LEVELS)
    parser.add_argument("--log-file", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("refresh", help="Run one refresh cycle and print the run summary")
    sub.add_parser("top-ten", help="Print the cached curated stories")
    sub.add_parser("compact", help="Print compact cached content per type")
    sub.add_parser("stats", help="Print cache statistics")
    sub.add_parser("freshness", help="Print per-source fetch health from the fetch log")

    serve = sub.add_parser("serve", help="Start the trigger API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    configure_package_loggers(level=args.log_level, log_file=args.log_file)

    if args.command == "refresh":
        _print(asyncio.run(_refresh()))
        return

    if args.command == "freshness":
        _print(asyncio.run(_freshness()))
        return

    if args.command in {"top-ten", "compact", "stats"}:
        _print(asyncio.run(_read_cache(args.command)))
        return

    if args.command == "serve":
        import uvicorn

        uvicorn.run("webapp.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
