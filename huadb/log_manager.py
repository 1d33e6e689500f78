"""Write-ahead log buffer, dirty page table and active transaction table."""

from __future__ import annotations

import threading
from typing import Iterator

from huadb.errors import DbError
from huadb.log_records import (
    BeginCheckpointLog,
    BeginLog,
    CommitLog,
    DeleteLog,
    EndCheckpointLog,
    InsertLog,
    LogRecord,
    NewPageLog,
    RollbackLog,
    deserialize,
)
from huadb.table_page import NULL_PAGE_ID
from huadb.transaction import NULL_XID

NULL_LSN = 0
FIRST_LSN = 1
DDL_XID = 0xFFFFFFFF
NEXT_LSN_NAME = "next_lsn"
MASTER_RECORD_NAME = "master_record"


class LogManager:
    """Assigns log sequence numbers, buffers log records and writes them to disk."""

    def __init__(self, disk, transaction_manager, next_lsn: int = FIRST_LSN) -> None:
        self._disk = disk
        self._transaction_manager = transaction_manager
        self.buffer_pool = None
        self.catalog = None
        self._att: dict[int, int] = {}
        self._dpt: dict[tuple[int, int], int] = {}
        self._next_lsn = next_lsn
        self._flushed_lsn = next_lsn - 1
        self._buffer: list[LogRecord] = []
        self._lock = threading.Lock()
        self.redo_count = 0

    @property
    def next_lsn(self) -> int:
        return self._next_lsn

    @property
    def flushed_lsn(self) -> int:
        """Largest lsn written to disk."""
        return self._flushed_lsn

    @property
    def active_transactions(self) -> dict[int, int]:
        """Active transactions mapped to their last lsn."""
        return dict(self._att)

    @property
    def dirty_pages(self) -> dict[tuple[int, int], int]:
        """(table oid, page id) mapped to the lsn that first dirtied the page."""
        return dict(self._dpt)

    def _read_number(self, name: str) -> int | None:
        if not self._disk.file_exists(name):
            return None
        text = self._disk._resolve(name).read_text().strip()
        return int(text) if text else None

    def _write_number(self, name: str, value: int) -> None:
        self._disk._resolve(name).write_text(str(value))

    def _append(self, record: LogRecord) -> int:
        with self._lock:
            lsn = self._next_lsn
            record.lsn = lsn
            self._next_lsn += record.size
            self._buffer.append(record)
        return lsn

    def _prev_lsn(self, xid: int, where: str) -> int:
        if xid not in self._att:
            raise DbError(f"{xid} does not exist in att (in {where})")
        return self._att[xid]

    def clear(self) -> None:
        """Drop the unflushed log records, as a crash would."""
        with self._lock:
            self._buffer.clear()

    def set_dirty(self, oid: int, page_id: int, lsn: int) -> None:
        self._dpt.setdefault((oid, page_id), lsn)

    def append_insert_log(self, xid, oid, page_id, slot_id, offset, new_record) -> int:
        prev_lsn = self._prev_lsn(xid, "append_insert_log")
        lsn = self._append(
            InsertLog(NULL_LSN, xid, prev_lsn, oid, page_id, slot_id, offset, new_record)
        )
        self._att[xid] = lsn
        self.set_dirty(oid, page_id, lsn)
        return lsn

    def append_delete_log(self, xid, oid, page_id, slot_id) -> int:
        prev_lsn = self._prev_lsn(xid, "append_delete_log")
        lsn = self._append(DeleteLog(NULL_LSN, xid, prev_lsn, oid, page_id, slot_id))
        self._att[xid] = lsn
        self.set_dirty(oid, page_id, lsn)
        return lsn

    def append_new_page_log(self, xid, oid, prev_page_id, page_id) -> int:
        if xid == DDL_XID:
            prev_lsn = NULL_LSN
        else:
            prev_lsn = self._prev_lsn(xid, "append_new_page_log")
        lsn = self._append(NewPageLog(NULL_LSN, xid, prev_lsn, oid, prev_page_id, page_id))
        if xid != DDL_XID:
            self._att[xid] = lsn
        self.set_dirty(oid, page_id, lsn)
        if prev_page_id != NULL_PAGE_ID:
            self.set_dirty(oid, prev_page_id, lsn)
        return lsn

    def append_begin_log(self, xid) -> int:
        if xid in self._att:
            raise DbError(f"{xid} already exists in att")
        lsn = self._append(BeginLog(NULL_LSN, xid, NULL_LSN))
        self._att[xid] = lsn
        return lsn

    def _append_end_log(self, record_type, xid, where: str) -> int:
        prev_lsn = self._prev_lsn(xid, where)
        lsn = self._append(record_type(NULL_LSN, xid, prev_lsn))
        self.flush(lsn)
        del self._att[xid]
        return lsn

    def append_commit_log(self, xid) -> int:
        """Log a commit and force the log up to it to disk."""
        return self._append_end_log(CommitLog, xid, "append_commit_log")

    def append_rollback_log(self, xid) -> int:
        """Log a rollback and force the log up to it to disk."""
        return self._append_end_log(RollbackLog, xid, "append_rollback_log")

    def checkpoint(self, is_async: bool = False) -> int:
        """Write a checkpoint, flush the log and record it in the master record."""
        begin_lsn = self._append(BeginCheckpointLog(NULL_LSN, NULL_XID, NULL_LSN))
        end_lsn = self._append(
            EndCheckpointLog(NULL_LSN, NULL_XID, NULL_LSN, dict(self._att), dict(self._dpt))
        )
        self.flush(end_lsn)
        self._write_number(MASTER_RECORD_NAME, begin_lsn)
        return end_lsn

    def flush_page(self, table_oid: int, page_id: int, page_lsn: int) -> None:
        """Force the log up to a page's lsn before the page is written."""
        self.flush(page_lsn)
        self._dpt.pop((table_oid, page_id), None)

    def flush(self, lsn: int | None = None) -> None:
        """Write buffered records with lsn up to ``lsn``; all of them if it is None."""
        with self._lock:
            if lsn is None or lsn == NULL_LSN:
                due, self._buffer = self._buffer, []
            else:
                due = [record for record in self._buffer if record.lsn <= lsn]
                self._buffer = [record for record in self._buffer if record.lsn > lsn]
            for record in due:
                self._disk.write_log(record.lsn, record.to_bytes())
        if not due:
            return
        last = max(due, key=lambda record: record.lsn)
        if self._flushed_lsn == NULL_LSN or last.lsn > self._flushed_lsn:
            self._flushed_lsn = last.lsn
            stored = self._read_number(NEXT_LSN_NAME)
            stored_next = FIRST_LSN if stored is None else stored
            end = last.lsn + last.size
            if end > stored_next:
                self._write_number(NEXT_LSN_NAME, end)

    def recover(self) -> None:
        """Rebuild the log position, active transactions and dirty pages from disk."""
        with self._lock:
            self._buffer.clear()
        stored = self._read_number(NEXT_LSN_NAME)
        self._next_lsn = FIRST_LSN if stored is None else stored
        self._flushed_lsn = self._next_lsn - 1
        checkpoint_lsn = self._read_number(MASTER_RECORD_NAME) or NULL_LSN
        start = checkpoint_lsn if checkpoint_lsn != NULL_LSN else FIRST_LSN

        att: dict[int, int] = {}
        dpt: dict[tuple[int, int], int] = {}
        max_xid = NULL_XID
        for record in self._scan(start, self._next_lsn):
            if isinstance(record, EndCheckpointLog):
                for xid, lsn in record.att.items():
                    att.setdefault(xid, lsn)
                    max_xid = max(max_xid, xid)
                for key, lsn in record.dpt.items():
                    dpt.setdefault(key, lsn)
                continue
            if isinstance(record, BeginCheckpointLog):
                continue
            if record.xid not in (NULL_XID, DDL_XID):
                max_xid = max(max_xid, record.xid)
            if isinstance(record, (CommitLog, RollbackLog)):
                att.pop(record.xid, None)
                continue
            if record.xid != DDL_XID:
                att[record.xid] = record.lsn
            if isinstance(record, (InsertLog, DeleteLog)):
                dpt.setdefault((record.oid, record.page_id), record.lsn)
            elif isinstance(record, NewPageLog):
                dpt.setdefault((record.oid, record.page_id), record.lsn)
                if record.prev_page_id != NULL_PAGE_ID:
                    dpt.setdefault((record.oid, record.prev_page_id), record.lsn)
        self._att = att
        self._dpt = dpt
        if max_xid != NULL_XID:
            self._transaction_manager.set_next_xid(max_xid + 1)

    def _scan(self, start: int, end: int) -> Iterator[LogRecord]:
        if end <= start:
            return
        data = self._disk.read_log(start, end - start)
        offset = 0
        while offset < len(data):
            record = deserialize(start + offset, data[offset:])
            yield record
            offset += record.size

    def increment_redo_count(self) -> None:
        self.redo_count += 1