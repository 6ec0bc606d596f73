from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING, Any, BinaryIO

from dissect.sqlcarve.c_sqlite3 import SERIAL_TYPE_SIZES, SERIAL_TYPES, c_sqlite3
from dissect.sqlcarve.exceptions import (
    InvalidPageNumber,
    InvalidRecord,
    InvalidSerialType,
    TruncatedRecordError,
)

if TYPE_CHECKING:
    from dissect.sqlcarve.pagestore import PageStore


def varint(fh: BinaryIO) -> int:
    """Read an SQLite varint from ``fh`` and return it as a signed 64-bit integer.

    The stream is left positioned directly after the varint.
    """
    byte_num = 0
    value = 0

    while True:
        buf = fh.read(1)
        if not buf:
            raise TruncatedRecordError("Varint runs past the end of the buffer")
        val = buf[0]

        if byte_num == 8:
            value = (value << 8) | val
            break

        value = (value << 7) | (val & 0x7F)
        if val & 0x80:
            byte_num += 1
        else:
            break

    if value & (1 << 63):
        value -= 1 << 64

    return value


def decode_varint(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode the varint at ``offset`` in ``buf``, returning ``(value, length)``."""
    fh = BytesIO(buf)
    fh.seek(offset)
    value = varint(fh)
    return value, fh.tell() - offset


def serial_type_size(type_: int) -> int:
    """Return the number of body bytes a column of serial type ``type_`` occupies."""
    if type_ in SERIAL_TYPE_SIZES:
        return SERIAL_TYPE_SIZES[type_]

    if type_ >= 12:
        if type_ % 2 == 0:
            return (type_ - 12) // 2
        return (type_ - 13) // 2

    raise InvalidSerialType(f"Reserved serial type {type_}")


def read_value(fh: BinaryIO, type_: int, encoding: str) -> Any:
    size = serial_type_size(type_)

    buf = fh.read(size)
    if len(buf) != size:
        raise TruncatedRecordError(f"Serial type {type_} needs {size} bytes, only {len(buf)} available")

    if type_ in SERIAL_TYPES:
        return SERIAL_TYPES[type_](buf)

    if type_ % 2 == 0:
        return buf

    try:
        return buf.decode(encoding)
    except UnicodeDecodeError as e:
        raise InvalidRecord(f"Unable to decode text column as {encoding}") from e


def read_record(fh: BinaryIO, encoding: str) -> tuple[list[int], list[Any]]:
    """Parse a record (header and body) starting at the current position of ``fh``.

    Returns the serial types and the decoded values, in column order.
    """
    start = fh.tell()
    size = varint(fh)
    end = start + size

    types = []
    while fh.tell() < end:
        types.append(varint(fh))

    values = []
    for type_ in types:
        values.append(read_value(fh, type_, encoding))

    return types, values


def read_cell(store: PageStore, buf: bytes, offset: int) -> tuple[int, list[int], list[Any]]:
    """Decode the table leaf cell at ``offset`` of the page in ``buf``.

    Returns the row id, the serial types and the column values. Payloads that
    spill onto overflow pages are reassembled first.
    """
    fh = BytesIO(buf)
    fh.seek(offset)

    size = varint(fh)
    rowid = varint(fh)

    payload = cell_payload(store, buf, fh.tell(), size)
    types, values = read_record(BytesIO(payload), store.encoding)
    return rowid, types, values


def cell_payload(store: PageStore, buf: bytes, offset: int, size: int) -> bytes:
    usable_size = store.usable_page_size
    max_local = usable_size - 35
    min_local = (usable_size - 12) * 32 // 255 - 23

    if size < 0:
        raise InvalidRecord(f"Negative payload size {size}")

    if size <= max_local:
        payload = buf[offset : offset + size]
        if len(payload) != size:
            raise TruncatedRecordError(f"Payload of {size} bytes runs past the end of the page")
        return payload

    # The local part is followed by the number of the first overflow page. Each
    # overflow page starts with the next page number (0 for the last one),
    # followed by up to usable_size - 4 bytes of payload.
    surplus = min_local + (size - min_local) % (usable_size - 4)
    local_size = surplus if surplus <= max_local else min_local

    local_buf = buf[offset : offset + local_size + 4]
    if len(local_buf) != local_size + 4:
        raise TruncatedRecordError("Local payload runs past the end of the page")

    result = [local_buf[:-4]]
    remaining = size - local_size
    overflow_page = c_sqlite3.uint32(local_buf[-4:])
    seen = set()

    while remaining > 0:
        if not overflow_page or overflow_page in seen:
            raise TruncatedRecordError(f"Overflow chain broken at page {overflow_page}")
        seen.add(overflow_page)

        try:
            page_buf = store.load(overflow_page)
        except InvalidPageNumber as e:
            raise TruncatedRecordError(f"Overflow page {overflow_page} is outside of the file") from e

        data_size = min(remaining, usable_size - 4)
        result.append(page_buf[4 : 4 + data_size])
        remaining -= data_size
        overflow_page = c_sqlite3.uint32(page_buf[:4])

    return b"".join(result)
