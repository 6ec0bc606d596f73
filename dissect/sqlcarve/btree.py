from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dissect.sqlcarve.c_sqlite3 import (
    BTREE_MAX_DEPTH,
    INTERIOR_PAGE_HEADER_SIZE,
    PAGE_HEADER_SIZE,
    PAGE_TYPES,
    SQLITE3_HEADER_SIZE,
    c_sqlite3,
)
from dissect.sqlcarve.exceptions import InvalidPageNumber, InvalidRecord
from dissect.sqlcarve.record import read_cell
from dissect.sqlcarve.schema import SchemaEntry

if TYPE_CHECKING:
    from dissect.sqlcarve.pagestore import PageStore

log = logging.getLogger(__name__)


class Page:
    """A single database page and its parsed b-tree page header.

    Page 1 starts with the 100 byte database header, the page header follows
    it. Cell pointers are always relative to the start of the page.
    """

    def __init__(self, num: int, data: bytes):
        self.num = num
        self.data = bytes(data)
        self.header_offset = SQLITE3_HEADER_SIZE if num == 1 else 0

        fp = self.header_offset
        self.header = c_sqlite3.page_header(self.data[fp : fp + PAGE_HEADER_SIZE])
        self.right_page = None

        if self.header.flags in (
            c_sqlite3.PAGE_TYPE_INTERIOR_INDEX,
            c_sqlite3.PAGE_TYPE_INTERIOR_TABLE,
        ):
            fp += PAGE_HEADER_SIZE
            self.right_page = c_sqlite3.uint32(self.data[fp : fp + 4])

    def __repr__(self) -> str:
        page_type = PAGE_TYPES.get(self.header.flags, f"0x{self.header.flags:02x}")
        return (
            f"<Page num={self.num} type={page_type} cells={self.header.cell_count} "
            f"freeblock={self.header.first_freeblock} cell_start={self.cell_start} right_page={self.right_page}>"
        )

    @property
    def is_interior_table(self) -> bool:
        return self.header.flags == c_sqlite3.PAGE_TYPE_INTERIOR_TABLE

    @property
    def is_leaf_table(self) -> bool:
        return self.header.flags == c_sqlite3.PAGE_TYPE_LEAF_TABLE

    @property
    def header_size(self) -> int:
        return INTERIOR_PAGE_HEADER_SIZE if self.right_page is not None else PAGE_HEADER_SIZE

    @property
    def cell_start(self) -> int:
        return self.header.cell_start or 65536

    def cell_pointers(self) -> list[int]:
        fp = self.header_offset + self.header_size
        count = self.header.cell_count

        available = max(0, (len(self.data) - fp) // 2)
        if count > available:
            log.warning("Page %d claims %d cells, only %d cell pointers fit in the page", self.num, count, available)
            count = available

        if not count:
            return []

        return list(c_sqlite3.uint16[count](self.data[fp : fp + count * 2]))

    def child_pages(self) -> list[int]:
        """The left child of every interior cell, followed by the right-most pointer."""
        children = []
        for offset in self.cell_pointers():
            buf = self.data[offset : offset + 4]
            if len(buf) != 4:
                log.warning("Interior cell at offset 0x%x on page %d is outside of the page", offset, self.num)
                continue
            children.append(c_sqlite3.uint32(buf))

        if self.right_page is not None:
            children.append(self.right_page)

        return children


class BTreeWalker:
    """Recursive traversal of table b-trees.

    Every traversal keeps its own set of visited pages and depth counter, so a
    corrupt file with a page cycle or an absurdly deep tree ends in a logged
    dead end instead of endless recursion.
    """

    def __init__(self, store: PageStore, max_depth: int = BTREE_MAX_DEPTH):
        self.store = store
        self.max_depth = max_depth

    def page(self, num: int) -> Page:
        return Page(num, self.store.load(num))

    def _enter(self, num: int, seen: set[int], depth: int) -> Page | None:
        if depth > self.max_depth:
            log.warning("Maximum b-tree depth of %d exceeded at page %d", self.max_depth, num)
            return None

        if num in seen:
            log.warning("Page %d is referenced more than once, possible page cycle", num)
            return None
        seen.add(num)

        try:
            return self.page(num)
        except InvalidPageNumber as e:
            log.warning("Skipping page reference: %s", e)
            return None

    def walk_catalog(self, num: int = 1) -> list[SchemaEntry]:
        """Collect the schema rows stored in the table b-tree rooted at ``num``."""
        return self._walk_catalog(num, set(), 0)

    def _walk_catalog(self, num: int, seen: set[int], depth: int) -> list[SchemaEntry]:
        page = self._enter(num, seen, depth)
        if page is None:
            return []

        entries = []
        if page.is_interior_table:
            for child in page.child_pages():
                entries.extend(self._walk_catalog(child, seen, depth + 1))

        elif page.is_leaf_table:
            for offset in page.cell_pointers():
                try:
                    _, _, values = read_cell(self.store, page.data, offset)
                except InvalidRecord as e:
                    log.warning("Skipping catalog cell at offset 0x%x on page %d: %s", offset, num, e)
                    continue

                entries.append(SchemaEntry.from_record(values))

        else:
            log.debug("Page %d has unsupported page type 0x%02x", num, page.header.flags)

        return entries

    def pages_of(self, num: int, interior: list[int] | None = None) -> list[int]:
        """Return the leaf pages of the table b-tree rooted at ``num``.

        When ``interior`` is given, the interior pages that were passed through
        are appended to it.
        """
        return self._pages_of(num, interior, set(), 0)

    def _pages_of(self, num: int, interior: list[int] | None, seen: set[int], depth: int) -> list[int]:
        page = self._enter(num, seen, depth)
        if page is None:
            return []

        if page.is_leaf_table:
            return [num]

        # Leaves are collected left to right, the order of their row ids
        leaves = []
        if page.is_interior_table:
            if interior is not None:
                interior.append(num)

            for child in page.child_pages():
                leaves.extend(self._pages_of(child, interior, seen, depth + 1))

        else:
            log.debug("Page %d has unsupported page type 0x%02x", num, page.header.flags)

        return leaves
