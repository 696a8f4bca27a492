"""Brand cache CLI entry points.

This module exposes rebuild and read commands over the on-disk cache.
It maps argparse commands onto brand service calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Iterator, Sequence

from core.config import BrandsConfig
from core.logging_config import configure_logging
from ingest.override_feed import OverrideFeed, StaticOverrideFeed
from ingest.taxonomy_feed import StaticTaxonomyFeed, TaxonomyFeed
from serve.brand_service import BrandService, create_brand_service
from store.brand_payload import encode_brand


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="brandcache", description="Brand cache CLI")
    parser.add_argument("--cache-file", help="Override BRANDS_CACHE_FILE for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_rebuild_command(subparsers)
    subparsers.add_parser("count", help="Print the number of cached brands")
    _add_get_command(subparsers)
    subparsers.add_parser("ids", help="Stream cached brand ids as JSON lines")
    subparsers.add_parser("list", help="Stream cached brands as JSON lines")
    _add_links_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the brand cache CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _build_config(args.cache_file)
    configure_logging(config.log_level)
    if args.command == "rebuild":
        return _run_rebuild_command(config, args)
    service = create_brand_service(config)
    try:
        service.open_existing()
        if args.command == "count":
            print(service.count())
            return 0
        if args.command == "get":
            return _run_get_command(service, args)
        if args.command == "ids":
            return _write_stream(service.list_ids())
        if args.command == "list":
            return _write_stream(service.list_all())
        if args.command == "links":
            return _write_stream(service.list_links(args.base_url))
    finally:
        service.shutdown()
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(cache_file: str | None) -> BrandsConfig:
    """Build config with optional cache-file override."""
    config = BrandsConfig.from_env()
    if cache_file:
        config = replace(config, cache_file=Path(cache_file).expanduser())
    return config


def _run_rebuild_command(config: BrandsConfig, args: argparse.Namespace) -> int:
    """Handle rebuild command.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    taxonomy_feed: TaxonomyFeed | None = None
    if args.taxonomy_file:
        taxonomy_feed = StaticTaxonomyFeed.from_xml_file(
            Path(args.taxonomy_file), config.max_records
        )
    override_feed: OverrideFeed | None = None
    if args.override_file:
        override_feed = StaticOverrideFeed.from_json_file(Path(args.override_file))
    elif args.skip_overrides:
        config = replace(config, override_url=None)
    service = create_brand_service(config, taxonomy_feed, override_feed)
    try:
        summary = service.reload()
        count = service.count()
    finally:
        service.shutdown()
    print(f"pages_fetched={summary.pages_fetched}")
    print(f"terms_ingested={summary.terms_ingested}")
    print(f"batches_failed={summary.batches_failed}")
    print(f"overrides_applied={summary.overrides_applied}")
    print(f"overrides_skipped={summary.overrides_skipped}")
    print(f"brand_count={count}")
    return 0


def _run_get_command(service: BrandService, args: argparse.Namespace) -> int:
    brand = service.get_brand(args.uuid)
    if brand is None:
        print(f"Brand not found: {args.uuid}", file=sys.stderr)
        return 1
    print(encode_brand(brand))
    return 0


def _write_stream(chunks: Iterator[str]) -> int:
    for chunk in chunks:
        sys.stdout.write(chunk)
    sys.stdout.flush()
    return 0


def _add_rebuild_command(subparsers: Any) -> None:
    """Register rebuild subcommand."""
    parser = subparsers.add_parser("rebuild", help="Rebuild the cache from the brand feeds")
    parser.add_argument(
        "--taxonomy-file",
        help="Read terms from a local taxonomy XML file instead of the term service",
    )
    override_group = parser.add_mutually_exclusive_group()
    override_group.add_argument(
        "--override-file",
        help="Read curated overrides from a local JSON file instead of BRANDS_OVERRIDE_URL",
    )
    override_group.add_argument(
        "--skip-overrides",
        action="store_true",
        help="Do not apply curated overrides",
    )


def _add_get_command(subparsers: Any) -> None:
    """Register get subcommand."""
    parser = subparsers.add_parser("get", help="Print one cached brand as JSON")
    parser.add_argument("uuid", help="Brand UUID")


def _add_links_command(subparsers: Any) -> None:
    """Register links subcommand."""
    parser = subparsers.add_parser("links", help="Stream a JSON array of brand API links")
    parser.add_argument("--base-url", help="Override BRANDS_BASE_URL for link generation")
