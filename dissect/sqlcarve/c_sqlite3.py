from __future__ import annotations

from dissect.cstruct import cstruct

sqlite3_def = """
#define PAGE_FLAG_INTKEY      0x01
#define PAGE_FLAG_ZERODATA    0x02
#define PAGE_FLAG_LEAFDATA    0x04
#define PAGE_FLAG_LEAF        0x08

#define PAGE_TYPE_INTERIOR_INDEX    PAGE_FLAG_ZERODATA
#define PAGE_TYPE_INTERIOR_TABLE    PAGE_FLAG_INTKEY | PAGE_FLAG_LEAFDATA
#define PAGE_TYPE_LEAF_INDEX        PAGE_FLAG_ZERODATA | PAGE_FLAG_LEAF
#define PAGE_TYPE_LEAF_TABLE        PAGE_FLAG_INTKEY | PAGE_FLAG_LEAFDATA | PAGE_FLAG_LEAF

struct header {
    char    magic[16];
    uint16  page_size;
    uint8   write_version;
    uint8   read_version;
    uint8   reserved_size;
    uint8   max_embedded_payload_fraction;
    uint8   min_embedded_payload_fraction;
    uint8   leaf_payload_fraction;
    uint32  change_counter;
    uint32  page_count;
    uint32  first_freelist_page;
    uint32  freelist_page_count;
    uint32  schema_cookie;
    uint32  schema_format_number;
    uint32  page_cache_size;
    uint32  largest_root_btree_page;
    uint32  text_encoding;
    uint32  user_version;
    uint32  incremental_vacuum_mode;
    uint32  application_id;
    char    reserved1[20];
    uint32  version_valid_for_number;
    uint32  sqlite_version_number;
};

struct page_header {
    uint8   flags;
    uint16  first_freeblock;
    uint16  cell_count;
    uint16  cell_start;
    uint8   fragmented_free_bytes;
};

struct freeblock_header {
    uint16  next_freeblock;
    uint16  size;
};
"""

c_sqlite3 = cstruct(endian=">")
c_sqlite3.load(sqlite3_def)

SQLITE3_HEADER_SIZE = len(c_sqlite3.header)
SQLITE3_HEADER_SIGNATURE = b"sqlite format 3"

PAGE_HEADER_SIZE = len(c_sqlite3.page_header)
INTERIOR_PAGE_HEADER_SIZE = PAGE_HEADER_SIZE + 4
FREEBLOCK_HEADER_SIZE = len(c_sqlite3.freeblock_header)

MIN_PAGE_SIZE = 512
MAX_PAGE_SIZE = 65536

# SQLite refuses to descend further than this in a single b-tree
BTREE_MAX_DEPTH = 20

ENCODING = {
    1: "utf-8",
    2: "utf-16-le",
    3: "utf-16-be",
}

ENCODING_NAME = {
    "utf-8": "UTF-8",
    "utf-16-le": "UTF-16LE",
    "utf-16-be": "UTF-16BE",
}

PAGE_TYPES = {
    c_sqlite3.PAGE_TYPE_INTERIOR_INDEX: "PAGE_TYPE_INTERIOR_INDEX",
    c_sqlite3.PAGE_TYPE_INTERIOR_TABLE: "PAGE_TYPE_INTERIOR_TABLE",
    c_sqlite3.PAGE_TYPE_LEAF_INDEX: "PAGE_TYPE_LEAF_INDEX",
    c_sqlite3.PAGE_TYPE_LEAF_TABLE: "PAGE_TYPE_LEAF_TABLE",
}

SERIAL_TYPES = {
    0: lambda buf: None,
    1: c_sqlite3.int8,
    2: c_sqlite3.int16,
    3: c_sqlite3.int24,
    4: c_sqlite3.int32,
    5: c_sqlite3.int48,
    6: c_sqlite3.int64,
    7: c_sqlite3.double,
    8: lambda buf: 0,
    9: lambda buf: 1,
}

SERIAL_TYPE_SIZES = {
    0: 0,
    1: 1,
    2: 2,
    3: 3,
    4: 4,
    5: 6,
    6: 8,
    7: 8,
    8: 0,
    9: 0,
}
