from dissect.sqlcarve.exceptions import (
    Error,
    FormatError,
    InvalidPageNumber,
    InvalidRecord,
    InvalidSerialType,
    TruncatedRecordError,
)
from dissect.sqlcarve.schema import SchemaEntry, TableType
from dissect.sqlcarve.sqlite3 import ChunkRetriever, open

__all__ = [
    "ChunkRetriever",
    "SchemaEntry",
    "TableType",
    "open",
    "Error",
    "FormatError",
    "InvalidPageNumber",
    "InvalidRecord",
    "InvalidSerialType",
    "TruncatedRecordError",
]
