from __future__ import annotations

from enum import Enum
from typing import Any


class TableType(Enum):
    TABLE = "table"
    INDEX = "index"
    VIEW = "view"
    TRIGGER = "trigger"
    UNALLOCATED = "unallocated"

    @classmethod
    def from_string(cls, value: Any) -> TableType:
        """Map the ``type`` column of ``sqlite_master`` to a :class:`TableType`.

        Anything that is not one of the four known object kinds, including
        non-text values, is :attr:`UNALLOCATED`.
        """
        if not isinstance(value, str):
            return cls.UNALLOCATED

        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNALLOCATED


class SchemaEntry:
    """A single object of the schema catalog, with the pages its b-tree owns."""

    def __init__(
        self,
        type_: TableType,
        name: str,
        table_name: str,
        root_page: int,
        sql: str,
        leaf_pages: list[int] | None = None,
        interior_pages: list[int] | None = None,
    ):
        self.type = type_
        self.name = name
        self.table_name = table_name
        self.root_page = root_page
        self.sql = sql
        self.leaf_pages = leaf_pages or []
        self.interior_pages = interior_pages or []

    @classmethod
    def from_record(cls, values: list[Any]) -> SchemaEntry:
        """Build an entry from the ``(type, name, tbl_name, rootpage, sql)`` columns of a catalog row."""
        type_, name, table_name, root_page, sql = (list(values) + [None] * 5)[:5]

        if not isinstance(root_page, int):
            root_page = 0

        return cls(TableType.from_string(type_), _text(name), _text(table_name), int(root_page), _text(sql))

    def __repr__(self) -> str:
        return f"<SchemaEntry type={self.type.name} name={self.name!r} root_page={self.root_page} pages={len(self.pages)}>"

    @property
    def pages(self) -> list[int]:
        """All pages of this entry: leaf pages first, then interior pages."""
        return self.leaf_pages + self.interior_pages


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
