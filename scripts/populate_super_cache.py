#!/usr/bin/env python3
"""
Populate the aggregate store snapshot ("super cache") in Redis.

The snapshot is never refreshed on the read path; this helper is the external
trigger. Run it from cron, a CI job or a developer workstation. It either
stores a pre-assembled snapshot read from a JSON file or fetches categories,
default category books and image URLs from the catalog provider.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from shared.config import get_config
from shared.logging import configure_logging
from service_storefront.app.adapters.catalog_client import CatalogClient
from service_storefront.app.caching.kv_store import KeyValueStore
from service_storefront.app.catalog.super_cache import SuperCache


async def populate(*, redis_url: Optional[str], store_data_path: Optional[Path], dry_run: bool) -> dict:
    """Build the snapshot and return the population summary."""
    config = get_config("storefront", 8000)
    store = KeyValueStore(redis_url or config.redis_url)
    catalog_client = CatalogClient(
        config.resolved_catalog_base_url(),
        config.catalog_access_token,
        api_version=config.catalog_api_version,
        timeout=config.catalog_timeout,
    )
    super_cache = SuperCache(store, catalog_client, config.default_categories(), ttl=config.super_cache_ttl)

    if dry_run:
        store.set = _noop_async  # type: ignore[assignment]

    store_data = json.loads(store_data_path.read_text()) if store_data_path else None
    try:
        return await super_cache.populate(store_data)
    finally:
        await store.close()


async def _noop_async(*args, **kwargs):  # type: ignore[no-untyped-def]
    return True


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Populate the aggregate store snapshot in Redis.")
    parser.add_argument("--redis-url", default=None, help="Redis connection URL (defaults to STOREFRONT_REDIS_URL)")
    parser.add_argument("--store-data", type=Path, default=None, help="JSON file with categories, defaultBooks and imageUrls")
    parser.add_argument("--dry-run", action="store_true", help="Do not write to Redis; print the computed metadata")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    configure_logging("storefront", "warning")
    try:
        summary = asyncio.run(
            populate(
                redis_url=args.redis_url,
                store_data_path=args.store_data,
                dry_run=args.dry_run,
            )
        )
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - CLI surface
        print(f"[super-cache] failed: {exc}", file=sys.stderr)
        return 1

    if args.dry_run:
        print("[super-cache] DRY RUN - no Redis writes executed")

    print(json.dumps(summary, indent=2))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
