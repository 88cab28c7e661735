"""Command line entry point.

    plugin-registry collect   # search npm, write data/plugins/all.json
    plugin-registry publish   # apply patches, rank, write the published data
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog
from pydantic import ValidationError

from plugin_registry.collector import collect_plugins, save_plugins
from plugin_registry.config import Settings
from plugin_registry.data import build_plugin_data, write_plugin_data
from plugin_registry.logging_config import configure_logging
from plugin_registry.metadata_fetcher import MetadataFetcher
from plugin_registry.npm_client import NpmClient, build_http_client

log = structlog.get_logger()


async def run_collect(settings: Settings) -> None:
    log.info("collection_started")
    async with build_http_client(settings.registry) as http_client:
        client = NpmClient(http_client, settings.registry)
        fetcher = MetadataFetcher(http_client, settings.fetcher)
        plugins = await collect_plugins(client, fetcher, settings.collector)
    save_plugins(plugins, settings.paths.data_dir)


async def run_publish(settings: Settings) -> None:
    async with build_http_client(settings.registry) as http_client:
        client = NpmClient(http_client, settings.registry)
        data = await build_plugin_data(settings.paths, client)
    write_plugin_data(data, settings.paths.output_file)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plugin-registry",
        description="Collect Vite, Rollup and Rolldown plugins from npm.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("collect", help="Search npm and save the collected plugins.")
    subparsers.add_parser("publish", help="Apply patches and write the published plugin data.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except ValidationError as exc:
        log.error("config_invalid", command=args.command, error=str(exc))
        return 1
    configure_logging(settings.logging)

    command = run_collect if args.command == "collect" else run_publish
    try:
        asyncio.run(command(settings))
    except Exception:
        log.error(f"{args.command}_failed", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
