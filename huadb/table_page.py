"""Slotted page layout for table records."""

from __future__ import annotations

import struct

from huadb.errors import DbError
from huadb.page import DB_PAGE_SIZE, Page
from huadb.record_header import RECORD_HEADER_SIZE, RecordHeader

NULL_PAGE_ID = 0xFFFFFFFF

_U64 = struct.Struct("<Q")
_U32 = struct.Struct("<I")
_U16 = struct.Struct("<H")
_SLOT = struct.Struct("<HH")

_LSN_OFFSET = 0
_NEXT_PAGE_OFFSET = _LSN_OFFSET + _U64.size
_LOWER_OFFSET = _NEXT_PAGE_OFFSET + _U32.size
_UPPER_OFFSET = _LOWER_OFFSET + _U16.size

# page_lsn(8) + next_page(4) + page_lower(2) + page_upper(2)
PAGE_HEADER_SIZE = _UPPER_OFFSET + _U16.size
# offset(2) + size(2)
SLOT_SIZE = _SLOT.size


class TablePage:
    """View of a page as a header, a slot array growing up and records growing down."""

    def __init__(self, page: Page) -> None:
        self.page = page

    def _get(self, fmt: struct.Struct, offset: int) -> int:
        return fmt.unpack_from(self.page.data, offset)[0]

    def _put(self, fmt: struct.Struct, offset: int, value: int) -> None:
        fmt.pack_into(self.page.data, offset, value)

    @property
    def page_lsn(self) -> int:
        return self._get(_U64, _LSN_OFFSET)

    @property
    def next_page_id(self) -> int:
        return self._get(_U32, _NEXT_PAGE_OFFSET)

    @property
    def lower(self) -> int:
        return self._get(_U16, _LOWER_OFFSET)

    @property
    def upper(self) -> int:
        return self._get(_U16, _UPPER_OFFSET)

    @property
    def record_count(self) -> int:
        return (self.lower - PAGE_HEADER_SIZE) // SLOT_SIZE

    @property
    def free_space_size(self) -> int:
        """Bytes left for a record once a slot for it is reserved."""
        return max(self.upper - self.lower - SLOT_SIZE, 0)

    def init(self) -> None:
        """Reset the page to an empty table page."""
        self._put(_U64, _LSN_OFFSET, 0)
        self._put(_U32, _NEXT_PAGE_OFFSET, NULL_PAGE_ID)
        self._put(_U16, _LOWER_OFFSET, PAGE_HEADER_SIZE)
        self._put(_U16, _UPPER_OFFSET, DB_PAGE_SIZE)
        self.page.set_dirty()

    def _slot(self, slot_id: int) -> tuple[int, int]:
        if not 0 <= slot_id < self.record_count:
            raise DbError(f"slot {slot_id} out of range")
        return _SLOT.unpack_from(self.page.data, PAGE_HEADER_SIZE + slot_id * SLOT_SIZE)

    def insert_record(self, record) -> int:
        """Store a serialized record and return its slot id."""
        data = bytes(record)
        if len(data) < RECORD_HEADER_SIZE:
            raise DbError("record is smaller than its header")
        if len(data) > self.free_space_size:
            raise DbError(f"not enough space in page for a record of {len(data)} bytes")
        upper = self.upper - len(data)
        self.page.data[upper : upper + len(data)] = data
        self._put(_U16, _UPPER_OFFSET, upper)
        slot_id = self.record_count
        _SLOT.pack_into(self.page.data, self.lower, upper, len(data))
        self._put(_U16, _LOWER_OFFSET, self.lower + SLOT_SIZE)
        self.page.set_dirty()
        return slot_id

    def delete_record(self, slot_id: int, xid: int) -> None:
        """Mark the record in a slot as deleted."""
        offset, _ = self._slot(slot_id)
        header = RecordHeader.from_bytes(self.page.data[offset : offset + RECORD_HEADER_SIZE])
        header.deleted = True
        self.page.data[offset : offset + RECORD_HEADER_SIZE] = header.to_bytes()
        self.page.set_dirty()

    def update_record_in_place(self, record, slot_id: int) -> None:
        """Overwrite a stored record with one that fits in its slot."""
        data = bytes(record)
        offset, size = self._slot(slot_id)
        if len(data) > size:
            raise DbError("record does not fit in its slot")
        self.page.data[offset : offset + len(data)] = data
        self.page.set_dirty()

    def get_record(self, slot_id: int) -> bytes:
        """Serialized bytes of the record in a slot."""
        offset, size = self._slot(slot_id)
        return bytes(self.page.data[offset : offset + size])

    def set_next_page_id(self, page_id: int) -> None:
        self._put(_U32, _NEXT_PAGE_OFFSET, page_id)
        self.page.set_dirty()

    def set_page_lsn(self, page_lsn: int) -> None:
        self._put(_U64, _LSN_OFFSET, page_lsn)
        self.page.set_dirty()

    def __str__(self) -> str:
        lines = [
            "TablePage[",
            f"  page_lsn: {self.page_lsn}",
            f"  next_page_id: {self.next_page_id}",
            f"  lower: {self.lower}",
            f"  upper: {self.upper}",
        ]
        if self.lower > self.upper:
            lines.append("\n***Error: lower > upper***")
        lines.append("  slots: ")
        for slot_id in range(self.record_count):
            offset, size = _SLOT.unpack_from(
                self.page.data, PAGE_HEADER_SIZE + slot_id * SLOT_SIZE
            )
            prefix = f"    {slot_id}: offset {offset}, size {size} "
            if size <= RECORD_HEADER_SIZE:
                lines.append(prefix + "***Error: record size smaller than header size***")
            elif offset + RECORD_HEADER_SIZE >= DB_PAGE_SIZE:
                lines.append(prefix + "***Error: record offset out of page boundary***")
            else:
                header = RecordHeader.from_bytes(
                    self.page.data[offset : offset + RECORD_HEADER_SIZE]
                )
                lines.append(prefix + str(header))
        return "\n".join(lines) + "\n]\n"