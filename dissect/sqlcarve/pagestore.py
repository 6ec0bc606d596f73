from __future__ import annotations

import os
from typing import BinaryIO

from dissect.sqlcarve.c_sqlite3 import (
    ENCODING,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
    SQLITE3_HEADER_SIGNATURE,
    SQLITE3_HEADER_SIZE,
    c_sqlite3,
)
from dissect.sqlcarve.exceptions import FormatError, InvalidPageNumber


class PageStore:
    """Hands out the raw pages of an SQLite 3 database file.

    The database header is parsed once; every :meth:`load` returns a fresh
    ``bytes`` object, so callers may hold on to as many pages as they like.
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh

        fh.seek(0)
        buf = fh.read(SQLITE3_HEADER_SIZE)
        if len(buf) != SQLITE3_HEADER_SIZE:
            raise FormatError("File is too small to contain an SQLite 3 header")

        self.header = c_sqlite3.header(buf)
        if self.header.magic.split(b"\x00", 1)[0].lower() != SQLITE3_HEADER_SIGNATURE:
            raise FormatError("Invalid header magic")

        self.page_size = self.header.page_size
        if self.page_size == 1:
            self.page_size = MAX_PAGE_SIZE

        if not MIN_PAGE_SIZE <= self.page_size <= MAX_PAGE_SIZE or self.page_size & (self.page_size - 1):
            raise FormatError(f"Invalid page size: {self.page_size}")

        self.usable_page_size = self.page_size - self.header.reserved_size

        # An unset (0) or unknown encoding is read as UTF-8
        self.encoding = ENCODING.get(self.header.text_encoding, ENCODING[1])

        fh.seek(0, os.SEEK_END)
        self.file_size = fh.tell()

        self._closed = False

    def __repr__(self) -> str:
        return f"<PageStore page_size={self.page_size} pages={self.total_pages()} encoding={self.encoding}>"

    def total_pages(self) -> int:
        """Number of pages in the file, including reserved and trailing pages."""
        return self.file_size // self.page_size

    def load(self, num: int) -> bytes:
        if num < 1 or num > self.total_pages():
            raise InvalidPageNumber(f"Page number {num} exceeds boundaries (1-{self.total_pages()})")

        self.fh.seek((num - 1) * self.page_size)
        buf = self.fh.read(self.page_size)
        if len(buf) != self.page_size:
            raise InvalidPageNumber(f"Short read on page {num}: {len(buf)} of {self.page_size} bytes")

        return buf

    def close(self) -> None:
        if self._closed:
            return

        self._closed = True
        self.fh.close()


def open_file(path: str | os.PathLike) -> PageStore:
    """Open the database file at ``path`` read-only."""
    try:
        fh = open(path, "rb")  # noqa: SIM115
    except OSError as e:
        raise FormatError(f"Unable to open {path!s} for reading: {e}") from e

    try:
        return PageStore(fh)
    except Exception:
        fh.close()
        raise
