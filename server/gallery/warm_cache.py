"""
Warm the local image cache from Drive.

Runs the same full scan the API performs on first use, downloads and
thumbnails every recipe and picture image, and reports what was found. Useful
before starting the server so the first page load does not pay for the scan.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from gallery.catalog import CatalogState
from gallery.config import get_settings
from gallery.dependencies import build_catalog, get_drive_client

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Warm the local image cache")
    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Override the image cache directory",
    )
    parser.add_argument(
        "--thumbnail-size",
        type=int,
        default=None,
        help="Override the thumbnail edge length in pixels",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    overrides = {}
    if args.cache_dir:
        overrides["image_cache_dir"] = args.cache_dir
    if args.thumbnail_size:
        overrides["thumbnail_size"] = args.thumbnail_size
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(level=settings.log_level, format="%(levelname)s:%(message)s")
    catalog = build_catalog(settings, get_drive_client())
    catalog.initialize()

    counts = catalog.counts()
    if catalog.state is not CatalogState.POPULATED:
        logger.error("Catalog scan failed, nothing cached")
        return 1

    assets = [
        asset
        for recipe in catalog.snapshot("recipes")
        for asset in recipe.assets
    ] + catalog.snapshot("pictures")
    missing = [asset.name for asset in assets if not catalog.images.is_cached(asset)]
    logger.info(
        "Cached %d recipes and %d pictures in %s",
        counts["recipes"],
        counts["pictures"],
        settings.image_cache_dir,
    )
    for name in missing:
        logger.warning("Missing cached image: %s", name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
