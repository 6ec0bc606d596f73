from __future__ import annotations

import sqlite3
from io import BytesIO
from typing import TYPE_CHECKING, BinaryIO

import pytest

from tests._utils import btree_page, catalog_page, database, table_leaf_cell

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def create_database(path: Path, statements: list[str], params: dict[str, list] | None = None) -> Path:
    con = sqlite3.connect(str(path))
    try:
        con.execute("PRAGMA secure_delete = OFF")
        for statement in statements:
            if params and statement in params:
                con.executemany(statement, params[statement])
            else:
                con.execute(statement)
            con.commit()
    finally:
        con.close()
    return path


def open_data(path: Path) -> Iterator[BinaryIO]:
    with path.open("rb") as fh:
        yield fh


@pytest.fixture
def single_table_db(tmp_path: Path) -> Iterator[BinaryIO]:
    path = create_database(
        tmp_path / "single.sqlite",
        [
            "CREATE TABLE test (id INTEGER PRIMARY KEY, name TEXT, value INTEGER)",
            "INSERT INTO test (name, value) VALUES ('testing', 1337)",
        ],
    )
    yield from open_data(path)


@pytest.fixture
def deleted_rows_db(tmp_path: Path) -> Iterator[BinaryIO]:
    insert = "INSERT INTO notes (body) VALUES (?)"
    path = create_database(
        tmp_path / "deleted.sqlite",
        [
            "CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)",
            insert,
            "DELETE FROM notes WHERE id = 2",
        ],
        {insert: [("alpha-live-row " * 4,), ("bravo-deleted-row " * 4,), ("charlie-live-row " * 4,)]},
    )
    yield from open_data(path)


@pytest.fixture
def dropped_table_db(tmp_path: Path) -> Iterator[BinaryIO]:
    insert = "INSERT INTO gone (body) VALUES (?)"
    path = create_database(
        tmp_path / "dropped.sqlite",
        [
            "PRAGMA page_size = 1024",
            "CREATE TABLE keep (id INTEGER PRIMARY KEY, body TEXT)",
            "INSERT INTO keep (body) VALUES ('kept')",
            "CREATE TABLE gone (id INTEGER PRIMARY KEY, body TEXT)",
            insert,
            "DROP TABLE gone",
        ],
        {insert: [(f"gone-{idx:04d}-" + "x" * 200,) for idx in range(100)]},
    )
    yield from open_data(path)


@pytest.fixture
def multilevel_db(tmp_path: Path) -> Iterator[BinaryIO]:
    insert = "INSERT INTO big (body) VALUES (?)"
    path = create_database(
        tmp_path / "multilevel.sqlite",
        [
            "PRAGMA page_size = 1024",
            "CREATE TABLE big (id INTEGER PRIMARY KEY, body TEXT)",
            insert,
        ],
        {insert: [(f"row-{idx:04d}-".ljust(100, "y"),) for idx in range(200)]},
    )
    yield from open_data(path)


@pytest.fixture
def many_tables_db(tmp_path: Path) -> Iterator[BinaryIO]:
    path = create_database(
        tmp_path / "many.sqlite",
        ["PRAGMA page_size = 1024"]
        + [f"CREATE TABLE t{idx:02d} (id INTEGER PRIMARY KEY, payload TEXT, extra BLOB)" for idx in range(40)],
    )
    yield from open_data(path)


@pytest.fixture
def wide_table_db(tmp_path: Path) -> Iterator[BinaryIO]:
    columns = ", ".join(f"column_{idx:03d} INTEGER" for idx in range(100))
    path = create_database(
        tmp_path / "wide.sqlite",
        [
            "PRAGMA page_size = 1024",
            f"CREATE TABLE wide ({columns})",
        ],
    )
    yield from open_data(path)


@pytest.fixture
def indexed_db(tmp_path: Path) -> Iterator[BinaryIO]:
    path = create_database(
        tmp_path / "indexed.sqlite",
        [
            "CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)",
            "CREATE INDEX t_name ON t (name)",
            "INSERT INTO t (name) VALUES ('indexed')",
        ],
    )
    yield from open_data(path)


@pytest.fixture
def utf16_db(tmp_path: Path) -> Iterator[BinaryIO]:
    path = create_database(
        tmp_path / "utf16.sqlite",
        [
            "PRAGMA encoding = 'UTF-16le'",
            'CREATE TABLE "städte" (name TEXT)',
        ],
    )
    yield from open_data(path)


@pytest.fixture
def freeblock_db() -> BinaryIO:
    """A two page database; page 2 is a table leaf with slack data and two free-blocks."""
    page_size = 512
    first = catalog_page(page_size, [["table", "t", "t", 2, "CREATE TABLE t (x)"]])

    page = btree_page(page_size, 0x0D, [table_leaf_cell(1, ["live"])])
    page[1:3] = (300).to_bytes(2, "big")
    page[5:7] = (300).to_bytes(2, "big")

    page[100:110] = b"slack-data"

    page[300:304] = (350).to_bytes(2, "big") + (10).to_bytes(2, "big")
    page[304:314] = b"\x00first\x00\x00\x00\x00"

    page[350:354] = (0).to_bytes(2, "big") + (8).to_bytes(2, "big")
    page[354:362] = b"second\x00\x00"

    return BytesIO(database([first, page], page_size))
