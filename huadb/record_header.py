"""Fixed-size header stored in front of every record."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from huadb.errors import DbError
from huadb.transaction import NULL_CID, NULL_XID

_FORMAT = struct.Struct("<?III")

# deleted(1) + xmin(4) + xmax(4) + cid(4)
RECORD_HEADER_SIZE = _FORMAT.size


@dataclass
class RecordHeader:
    deleted: bool = False
    xmin: int = NULL_XID
    xmax: int = NULL_XID
    cid: int = NULL_CID

    def to_bytes(self) -> bytes:
        return _FORMAT.pack(self.deleted, self.xmin, self.xmax, self.cid)

    @classmethod
    def from_bytes(cls, data) -> "RecordHeader":
        """Decode a header from the first RECORD_HEADER_SIZE bytes of ``data``."""
        if len(data) < RECORD_HEADER_SIZE:
            raise DbError(
                f"record header needs {RECORD_HEADER_SIZE} bytes, got {len(data)}"
            )
        deleted, xmin, xmax, cid = _FORMAT.unpack_from(data, 0)
        return cls(deleted, xmin, xmax, cid)

    def __str__(self) -> str:
        return (
            f"[deleted: {int(self.deleted)}, xmin: {self.xmin}, "
            f"xmax: {self.xmax}, cid: {self.cid}]"
        )