# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Cursor pagination over remote listing and query calls.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from ..errors import RemoteCallError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Page = Tuple[Sequence[T], Optional[str]]
PageFetcher = Callable[[Optional[str]], Page]


def paginate(fetch_page: PageFetcher, max_pages: Optional[int] = None) -> List[T]:
    """
    Call fetch_page until the remote stops returning a continuation cursor.

    Args:
        fetch_page: Called with the previous page's cursor (None on the first
            call); returns (items, next_cursor)
        max_pages: Optional upper bound on the number of pages fetched

    Returns:
        Items of every page concatenated in the order the remote returned them

    Raises:
        RemoteCallError: on the first failed page fetch, or when max_pages
            is exceeded. Items from earlier pages are discarded.
    """
    items: List[T] = []
    cursor: Optional[str] = None
    pages = 0

    while True:
        if max_pages is not None and pages >= max_pages:
            raise RemoteCallError(f"Pagination exceeded {max_pages} pages")

        try:
            page_items, cursor = fetch_page(cursor)
        except RemoteCallError:
            raise
        except Exception as e:
            raise RemoteCallError(f"Page fetch failed: {e}") from e

        pages += 1
        items.extend(page_items)

        if not cursor:
            break

    logger.debug(f"Fetched {len(items)} item(s) across {pages} page(s)")
    return items
