from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dissect.sqlcarve.c_sqlite3 import FREEBLOCK_HEADER_SIZE, c_sqlite3

if TYPE_CHECKING:
    from dissect.sqlcarve.btree import Page

log = logging.getLogger(__name__)


def strip_nul(buf: bytes) -> bytes:
    """Remove leading and trailing NUL bytes."""
    return buf.strip(b"\x00")


def extract_page(page: Page) -> list[bytes]:
    """Recover the unallocated chunks of a single page.

    Only table leaf pages (flags exactly 0x0D) are considered. Testing bit 0
    alone would also accept interior table pages and orphan pages that start
    with an odd byte. The first chunk is the slack space between the cell
    pointer array and the cell content area, followed by the contents of every
    free-block in list order. Empty chunks are dropped.
    """
    if not page.is_leaf_table:
        return []

    data = page.data
    chunks = []

    start = page.header_offset + page.header_size + page.header.cell_count * 2
    end = min(page.cell_start, len(data))
    if start < end:
        slack = strip_nul(data[start:end])
        if slack:
            chunks.append(slack)

    offset = page.header.first_freeblock
    seen = set()
    while offset:
        if offset in seen:
            log.warning("Free-block list of page %d loops back to offset 0x%x", page.num, offset)
            break
        seen.add(offset)

        if offset + FREEBLOCK_HEADER_SIZE > len(data):
            log.warning("Free-block at offset 0x%x is outside of page %d", offset, page.num)
            break

        freeblock = c_sqlite3.freeblock_header(data[offset : offset + FREEBLOCK_HEADER_SIZE])
        fp = offset + FREEBLOCK_HEADER_SIZE
        buf = strip_nul(data[fp : fp + freeblock.size])
        if buf:
            chunks.append(buf)

        offset = freeblock.next_freeblock

    return chunks
