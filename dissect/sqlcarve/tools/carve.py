from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dissect.cstruct import hexdump

from dissect.sqlcarve.exceptions import Error
from dissect.sqlcarve.sqlite3 import ChunkRetriever
from dissect.sqlcarve.sqlite3 import open as open_database

log = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dissect-sqlcarve",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Recover unallocated space from SQLite 3 database files.",
        epilog=(
            "Example usage:\n"
            "  dissect-sqlcarve catalog database.db\n"
            "  dissect-sqlcarve carve database.db --name messages -o chunks/\n"
        ),
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase log verbosity")

    subparsers = parser.add_subparsers(dest="command", required=True)

    catalog = subparsers.add_parser("catalog", help="list the schema catalog and the pages of every object")
    catalog.add_argument("dbfile", metavar="DBFILE", type=Path, help="database file")

    carve = subparsers.add_parser("carve", help="recover unallocated chunks")
    carve.add_argument("dbfile", metavar="DBFILE", type=Path, help="database file")
    target = carve.add_mutually_exclusive_group()
    target.add_argument("--name", metavar="NAME", help="limit to the object with this name")
    target.add_argument("--page", metavar="PAGE", type=int, help="limit to a single page")
    carve.add_argument("-o", "--outdir", metavar="OUTDIR", type=Path, help="write every chunk to a file in OUTDIR")

    return parser


def print_catalog(db: ChunkRetriever) -> None:
    print(f"encoding: {db.text_encoding_name()}  page size: {db.page_size}  pages: {db.total_pages()}")
    for entry in db.catalog():
        pages = " ".join(str(num) for num in entry.pages)
        print(f"{entry.type.name:<12} {entry.name!r:<24} {entry.table_name!r:<24} root={entry.root_page:<6} pages=[{pages}]")


def carve(db: ChunkRetriever, name: str | None, page: int | None, outdir: Path | None) -> int:
    if page is not None:
        sources = [(f"page{page}", [page])]
    else:
        entries = db.catalog()
        if name is not None:
            entries = [entry for entry in entries if entry.name.lower() == name.lower()]
            if not entries:
                print(f"No catalog entry named {name!r}", file=sys.stderr)
                return 1

        sources = [(entry.name or entry.type.name.lower(), entry.pages) for entry in entries]

    if outdir:
        outdir.mkdir(parents=True, exist_ok=True)

    for label, pages in sources:
        for num in pages:
            for idx, chunk in enumerate(db.unallocated_of_page(num)):
                if outdir:
                    path = outdir / f"{label}_{num}_{idx}.bin"
                    path.write_bytes(chunk)
                    log.info("Wrote %d bytes to %s", len(chunk), path)
                else:
                    print(f"{label} page={num} chunk={idx} size={len(chunk)}")
                    print(hexdump(chunk, output="string"))

    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        with open_database(args.dbfile) as db:
            if args.command == "catalog":
                print_catalog(db)
                return 0
            return carve(db, args.name, args.page, args.outdir)
    except Error as e:
        print(f"{args.dbfile}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
