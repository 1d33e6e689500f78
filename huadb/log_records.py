"""Write-ahead log records and their on-disk encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

from huadb.errors import DbError


class LogType(IntEnum):
    BEGIN = 0
    COMMIT = 1
    ROLLBACK = 2
    INSERT = 3
    DELETE = 4
    NEW_PAGE = 5
    BEGIN_CHECKPOINT = 6
    END_CHECKPOINT = 7


# type(1) + xid(4) + prev_lsn(8); the lsn is the record's position in the log file
_HEADER = struct.Struct("<BIQ")
_DELETE_BODY = struct.Struct("<IIH")
_INSERT_BODY = struct.Struct("<IIHHH")
_NEW_PAGE_BODY = struct.Struct("<III")
_COUNT = struct.Struct("<Q")
_ATT_ENTRY = struct.Struct("<IQ")
_DPT_ENTRY = struct.Struct("<IIQ")

_MAX_RECORD_SIZE = 0xFFFF


@dataclass
class LogRecord:
    """Common part of every log record."""

    lsn: int
    xid: int
    prev_lsn: int

    log_type: ClassVar[LogType]
    _name: ClassVar[str] = "LogRecord"

    @property
    def size(self) -> int:
        """Number of bytes the record takes in the log."""
        return _HEADER.size + len(self._payload())

    def _payload(self) -> bytes:
        return b""

    def to_bytes(self) -> bytes:
        """Encode the record as it is written to the log."""
        header = _HEADER.pack(int(self.log_type), self.xid, self.prev_lsn)
        return header + self._payload()

    @classmethod
    def _parse(cls, lsn: int, xid: int, prev_lsn: int, body: memoryview) -> "LogRecord":
        return cls(lsn, xid, prev_lsn)

    def _base_string(self) -> str:
        return (
            f"lsn: {self.lsn}\tsize: {self.size}\txid: {self.xid}\t"
            f"prev_lsn: {self.prev_lsn}"
        )

    def __str__(self) -> str:
        return f"{self._name}[{self._base_string()}]"


@dataclass
class BeginLog(LogRecord):
    log_type: ClassVar[LogType] = LogType.BEGIN
    _name: ClassVar[str] = "BeginLog\t\t"


@dataclass
class CommitLog(LogRecord):
    log_type: ClassVar[LogType] = LogType.COMMIT
    _name: ClassVar[str] = "CommitLog\t\t"


@dataclass
class RollbackLog(LogRecord):
    log_type: ClassVar[LogType] = LogType.ROLLBACK
    _name: ClassVar[str] = "RollbackLog\t"


@dataclass
class BeginCheckpointLog(LogRecord):
    log_type: ClassVar[LogType] = LogType.BEGIN_CHECKPOINT
    _name: ClassVar[str] = "BeginCheckpointLog\t"


@dataclass
class InsertLog(LogRecord):
    """A record written into a page at a given offset and slot."""

    oid: int = 0
    page_id: int = 0
    slot_id: int = 0
    page_offset: int = 0
    record: bytes = b""

    log_type: ClassVar[LogType] = LogType.INSERT

    def __post_init__(self) -> None:
        self.record = bytes(self.record)
        if len(self.record) > _MAX_RECORD_SIZE:
            raise DbError(f"record too large for insert log: {len(self.record)} bytes")

    @property
    def record_size(self) -> int:
        return len(self.record)

    def _payload(self) -> bytes:
        return (
            _INSERT_BODY.pack(
                self.oid, self.page_id, self.slot_id, self.page_offset, self.record_size
            )
            + self.record
        )

    @classmethod
    def _parse(cls, lsn, xid, prev_lsn, body):
        oid, page_id, slot_id, page_offset, record_size = _INSERT_BODY.unpack_from(body, 0)
        start = _INSERT_BODY.size
        record = bytes(body[start : start + record_size])
        if len(record) != record_size:
            raise DbError("insert log record is truncated")
        return cls(lsn, xid, prev_lsn, oid, page_id, slot_id, page_offset, record)

    def __str__(self) -> str:
        return (
            f"InsertLog\t\t[{self._base_string()}\toid: {self.oid}\t"
            f"page_id: {self.page_id}\tslot_id: {self.slot_id}\t"
            f"page_offset: {self.page_offset}\trecord_size: {self.record_size}]"
        )


@dataclass
class DeleteLog(LogRecord):
    """Deletion of the record in a slot."""

    oid: int = 0
    page_id: int = 0
    slot_id: int = 0

    log_type: ClassVar[LogType] = LogType.DELETE

    def _payload(self) -> bytes:
        return _DELETE_BODY.pack(self.oid, self.page_id, self.slot_id)

    @classmethod
    def _parse(cls, lsn, xid, prev_lsn, body):
        return cls(lsn, xid, prev_lsn, *_DELETE_BODY.unpack_from(body, 0))

    def __str__(self) -> str:
        return (
            f"DeleteLog\t\t[{self._base_string()} oid: {self.oid}\t"
            f"page_id: {self.page_id}\tslot_id: {self.slot_id}]"
        )


@dataclass
class NewPageLog(LogRecord):
    """Allocation of a page chained after ``prev_page_id``."""

    oid: int = 0
    prev_page_id: int = 0
    page_id: int = 0

    log_type: ClassVar[LogType] = LogType.NEW_PAGE

    def _payload(self) -> bytes:
        return _NEW_PAGE_BODY.pack(self.oid, self.prev_page_id, self.page_id)

    @classmethod
    def _parse(cls, lsn, xid, prev_lsn, body):
        return cls(lsn, xid, prev_lsn, *_NEW_PAGE_BODY.unpack_from(body, 0))

    def __str__(self) -> str:
        return (
            f"NewPageLog\t\t[{self._base_string()}\toid: {self.oid}\t"
            f"prev_page_id: {self.prev_page_id}\tpage_id: {self.page_id}]"
        )


@dataclass
class EndCheckpointLog(LogRecord):
    """Snapshot of the active transaction table and the dirty page table."""

    att: dict[int, int] = field(default_factory=dict)
    dpt: dict[tuple[int, int], int] = field(default_factory=dict)

    log_type: ClassVar[LogType] = LogType.END_CHECKPOINT

    def __post_init__(self) -> None:
        self.att = dict(self.att)
        self.dpt = {(int(oid), int(page)): lsn for (oid, page), lsn in self.dpt.items()}

    def _payload(self) -> bytes:
        parts = [_COUNT.pack(len(self.att))]
        parts.extend(_ATT_ENTRY.pack(xid, lsn) for xid, lsn in self.att.items())
        parts.append(_COUNT.pack(len(self.dpt)))
        parts.extend(
            _DPT_ENTRY.pack(oid, page_id, lsn) for (oid, page_id), lsn in self.dpt.items()
        )
        return b"".join(parts)

    @classmethod
    def _parse(cls, lsn, xid, prev_lsn, body):
        offset = 0
        (att_size,) = _COUNT.unpack_from(body, offset)
        offset += _COUNT.size
        att = {}
        for _ in range(att_size):
            entry_xid, entry_lsn = _ATT_ENTRY.unpack_from(body, offset)
            offset += _ATT_ENTRY.size
            att[entry_xid] = entry_lsn
        (dpt_size,) = _COUNT.unpack_from(body, offset)
        offset += _COUNT.size
        dpt = {}
        for _ in range(dpt_size):
            oid, page_id, entry_lsn = _DPT_ENTRY.unpack_from(body, offset)
            offset += _DPT_ENTRY.size
            dpt[(oid, page_id)] = entry_lsn
        return cls(lsn, xid, prev_lsn, att, dpt)

    def __str__(self) -> str:
        att = "".join(f"({xid}: {lsn}) " for xid, lsn in self.att.items())
        dpt = "".join(
            f"({oid}, {page_id}: {lsn}) " for (oid, page_id), lsn in self.dpt.items()
        )
        return f"EndCheckpointLog\t[{self._base_string()} att: {{{att}}} dpt: {{{dpt}}}]"


_RECORD_CLASSES: dict[LogType, type[LogRecord]] = {
    cls.log_type: cls
    for cls in (
        BeginLog,
        CommitLog,
        RollbackLog,
        InsertLog,
        DeleteLog,
        NewPageLog,
        BeginCheckpointLog,
        EndCheckpointLog,
    )
}


def deserialize(lsn: int, data) -> LogRecord:
    """Decode the log record stored at ``lsn`` from its bytes."""
    view = memoryview(bytes(data))
    try:
        type_code, xid, prev_lsn = _HEADER.unpack_from(view, 0)
    except struct.error as exc:
        raise DbError("log record header is truncated") from exc
    try:
        log_type = LogType(type_code)
    except ValueError as exc:
        raise DbError("Unknown log type in deserialize") from exc
    try:
        return _RECORD_CLASSES[log_type]._parse(lsn, xid, prev_lsn, view[_HEADER.size :])
    except struct.error as exc:
        raise DbError(f"{log_type.name} log record is truncated") from exc