from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO

from dissect.sqlcarve.btree import BTreeWalker, Page
from dissect.sqlcarve.c_sqlite3 import ENCODING_NAME
from dissect.sqlcarve.pagestore import PageStore, open_file
from dissect.sqlcarve.schema import SchemaEntry, TableType
from dissect.sqlcarve.unallocated import extract_page

if TYPE_CHECKING:
    import os

log = logging.getLogger(__name__)


class ChunkRetriever:
    """Recover unallocated data from an SQLite 3 database file.

    The schema catalog is rebuilt by walking the ``sqlite_master`` b-tree on
    page 1 and the b-tree of every object it describes. Pages that are not
    reachable from any of those trees are collected in a final
    :attr:`TableType.UNALLOCATED` entry.
    """

    def __init__(self, fh: BinaryIO | PageStore):
        self.store = fh if isinstance(fh, PageStore) else PageStore(fh)
        self.walker = BTreeWalker(self.store)

        self.page_size = self.store.page_size
        self.encoding = self.store.encoding

        self._catalog = None

    def __repr__(self) -> str:
        return f"<ChunkRetriever page_size={self.page_size} pages={self.total_pages()} encoding={self.text_encoding_name()}>"

    def __enter__(self) -> ChunkRetriever:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        self.store.close()

    def total_pages(self) -> int:
        return self.store.total_pages()

    def text_encoding_name(self) -> str:
        return ENCODING_NAME[self.encoding]

    def page(self, num: int) -> Page:
        return self.walker.page(num)

    def catalog(self) -> list[SchemaEntry]:
        """Return all schema entries, ending with the entry holding the orphan pages."""
        if self._catalog is None:
            self._catalog = self._build_catalog()
        return self._catalog

    def entry(self, name: str) -> SchemaEntry | None:
        name = name.lower()
        for entry in self.catalog():
            if entry.name.lower() == name:
                return entry
        return None

    def _build_catalog(self) -> list[SchemaEntry]:
        entries = self.walker.walk_catalog(1)

        # sqlite_master itself is a table rooted at page 1
        interior = []
        allocated = set(self.walker.pages_of(1, interior))
        allocated.update(interior)

        for entry in entries:
            if not entry.root_page:
                continue

            interior = []
            entry.leaf_pages = self.walker.pages_of(entry.root_page, interior)
            entry.interior_pages = interior

            # Index roots are not walked, but they are still live pages
            root = entry.root_page
            if 1 <= root <= self.total_pages() and root not in allocated and root not in entry.pages:
                entry.interior_pages.append(root)

            allocated.update(entry.pages)

        orphans = [num for num in range(1, self.total_pages() + 1) if num not in allocated]
        log.debug("Catalog has %d entries, %d of %d pages are unallocated", len(entries), len(orphans), self.total_pages())

        entries.append(SchemaEntry(TableType.UNALLOCATED, "", "", -1, "", leaf_pages=orphans))
        return entries

    def unallocated(self, entry: SchemaEntry) -> list[bytes]:
        """Recover the unallocated chunks from every page of ``entry``."""
        chunks = []
        for num in entry.pages:
            chunks.extend(self.unallocated_of_page(num))
        return chunks

    def unallocated_of_page(self, num: int) -> list[bytes]:
        return extract_page(self.page(num))


def open(path: str | os.PathLike) -> ChunkRetriever:  # noqa: A001
    """Open the SQLite 3 database at ``path`` read-only."""
    return ChunkRetriever(open_file(path))
