"""Command line access to a Dynamics 365 OData endpoint.

Credentials come from the environment (TENANT_ID, CLIENT_ID, CLIENT_SECRET,
ENDPOINT, PRODUCT, AUTH_TYPE, TOKEN_URL, RESOURCE); service settings from the
TOML config file.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from . import __version__
from .clients.odata_client import ODataClient
from .config.settings import DEFAULT_CONFIG_PATH, RuntimeConfig, load_default
from .core.exceptions import ConfigError, D365Error
from .models.query import QueryOptions

logger = logging.getLogger(__name__)


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="d365-odata", description="Read data from a Dynamics 365 OData endpoint"
    )
    p.add_argument("--version", action="version", version=f"d365-odata {__version__}")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="TOML config file")
    p.add_argument("--log-level", help="Override the configured log level")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("metadata", help="Print the $metadata document")

    fetch = sub.add_parser("fetch", help="Fetch records from an entity set")
    fetch.add_argument("entity")
    fetch.add_argument("--select", type=_csv)
    fetch.add_argument("--filter")
    fetch.add_argument("--top", type=int)
    fetch.add_argument("--skip", type=int)
    fetch.add_argument("--orderby")
    fetch.add_argument("--expand", type=_csv)
    fetch.add_argument("--count", action="store_true")
    fetch.add_argument(
        "--cross-company",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="F&O only; defaults to the entity's configured value",
    )
    fetch.add_argument("--all", action="store_true", help="Follow next links to the end")
    fetch.add_argument(
        "--max-pages", type=_positive_int, help="Stop --all after this many pages"
    )

    get = sub.add_parser("get", help="Fetch a single record by key")
    get.add_argument("entity")
    get.add_argument("key")

    return p.parse_args(argv)


def build_query_options(args: argparse.Namespace, config: RuntimeConfig) -> QueryOptions:
    """Query options from fetch arguments, falling back to per-entity config."""
    cross_company = args.cross_company
    if cross_company is None:
        entity = config.entity(args.entity)
        cross_company = bool(entity and entity.cross_company)

    return QueryOptions(
        select=args.select,
        filter=args.filter,
        top=args.top,
        skip=args.skip,
        orderby=args.orderby,
        expand=args.expand,
        cross_company=cross_company,
        count=args.count,
    )


async def execute(args: argparse.Namespace, config: RuntimeConfig) -> Any:
    if args.command == "fetch" and args.max_pages is not None:
        config = config.model_copy(update={"max_pages": args.max_pages})

    async with ODataClient.from_config(config) as client:
        if args.command == "metadata":
            return await client.fetch_metadata()
        if args.command == "get":
            return await client.get_entity(args.entity, args.key)

        options = build_query_options(args, config)
        if args.all:
            return await client.fetch_all_pages(args.entity, options)
        page = await client.fetch_entity_page(args.entity, None, options)
        return page.model_dump(by_alias=True, exclude_none=True)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_default(args.config).to_runtime()
    except D365Error as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        result = asyncio.run(execute(args, config))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except D365Error as e:
        logger.error("Request failed: %s", e)
        return 1

    if isinstance(result, str):
        print(result)
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
