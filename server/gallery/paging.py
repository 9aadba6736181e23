"""
Pagination and slideshow selection over catalog snapshots.
"""

from __future__ import annotations

import enum
import math
import random
from typing import Any, Optional, Sequence

from gallery.catalog import Catalog, CatalogKind

PAGE_SIZE = 12
SLIDESHOW_SIZE = 5


class SlideshowPolicy(str, enum.Enum):
    # Always the head of a fresh shuffle; the page number is ignored.
    HEAD = "head"
    # The page-th slice of a fresh shuffle.
    PAGED = "paged"


def coerce_page(value: Any) -> int:
    """Return a 1-based page number; anything non-numeric or below 1 is 1."""
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def _slice(items: Sequence, page: int, size: int) -> list:
    start = (page - 1) * size
    return list(items[start : start + size])


def get_page(
    items: Sequence,
    page: Any = 1,
    slideshow: bool = False,
    *,
    page_size: int = PAGE_SIZE,
    slideshow_size: int = SLIDESHOW_SIZE,
    policy: SlideshowPolicy | str = SlideshowPolicy.HEAD,
    rng: Optional[random.Random] = None,
) -> list:
    """
    Returns one page of items.

    Args:
        items (Sequence): The collection, in stored order.
        page (Any): Requested page, coerced with ``coerce_page``.
        slideshow (bool): Return a random subset of ``slideshow_size`` items
            instead of a stable page.
        policy (SlideshowPolicy): How the page number applies in slideshow mode.
        rng (random.Random): Source of randomness, for reproducible shuffles.

    Returns:
        list: The page; empty when the page is past the end.
    """
    page = coerce_page(page)
    if not slideshow:
        return _slice(items, page, page_size)

    shuffled = (rng or random).sample(list(items), len(items))
    if SlideshowPolicy(policy) is SlideshowPolicy.PAGED:
        return _slice(shuffled, page, slideshow_size)
    return shuffled[:slideshow_size]


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def list_items(
    catalog: Catalog,
    kind: CatalogKind | str,
    page: Any = 1,
    slideshow: bool = False,
    **options,
) -> list:
    kind = CatalogKind.parse(kind)
    catalog.ensure_initialized()
    return get_page(catalog.snapshot(kind), page, slideshow, **options)


def item_count(
    catalog: Catalog, kind: CatalogKind | str, page_size: int = PAGE_SIZE
) -> tuple[int, int]:
    """Returns ``(item_count, total_pages)``, initializing an empty catalog first."""
    kind = CatalogKind.parse(kind)
    catalog.ensure_initialized()
    count = len(catalog.snapshot(kind))
    return count, total_pages(count, page_size)
