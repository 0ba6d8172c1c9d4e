#!/usr/bin/env python3
"""
Command line access to the API client core.

    api-verge get vms --name "web*" --fields name,ram --sort -name --limit 10
    api-verge resolve tags Production
"""

import argparse
import asyncio
import json
import logging
import sys

from api_verge import config
from api_verge.client import Client
from api_verge.core.exceptions import VergeError

logger = logging.getLogger(__name__)


def parse_sort(value: str) -> tuple[str, str]:
    if value.startswith("-"):
        return value[1:], "desc"
    return value.lstrip("+"), "asc"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="api-verge")
    subparsers = parser.add_subparsers(dest="command", required=True)

    get = subparsers.add_parser("get", help="List the records of an endpoint")
    get.add_argument("endpoint")
    get.add_argument("--name", help="Exact name or wildcard pattern")
    get.add_argument("--fields", default="", help="Comma separated field projections")
    get.add_argument("--sort", action="append", default=[], help="+field or -field")
    get.add_argument("--limit", type=int)

    resolve = subparsers.add_parser("resolve", help="Resolve a resource into a reference")
    resolve.add_argument("family")
    resolve.add_argument("value")
    return parser


async def run(args: argparse.Namespace) -> None:
    async with Client() as client:
        if args.command == "get":
            records = await client.list_records(
                args.endpoint,
                name=args.name,
                fields=[f for f in args.fields.split(",") if f],
                sort=[parse_sort(s) for s in args.sort],
                limit=args.limit,
            )
            print(json.dumps(records, indent=2))
        elif args.command == "resolve":
            print(await client.resolve_reference(args.family, args.value))


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL)
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run(args))
    except (VergeError, ValueError) as e:
        logger.error(e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
