"""Page cache between table access and the disk."""

from __future__ import annotations

from dataclasses import dataclass

from huadb.buffer_strategy import LRUBufferStrategy
from huadb.disk import SYSTEM_DATABASE_OID, file_path
from huadb.errors import DbError
from huadb.page import Page
from huadb.table_page import NULL_PAGE_ID, TablePage

BUFFER_SIZE = 5


@dataclass
class _Frame:
    db_oid: int
    table_oid: int
    page_id: int
    page: Page


class BufferPool:
    """Caches pages; regular tables are bounded and evicted by LRU, system tables are not."""

    def __init__(self, disk, log_manager) -> None:
        self._disk = disk
        self._log_manager = log_manager
        self._strategy = LRUBufferStrategy()
        self._frames: list[_Frame] = []
        self._index: dict[tuple[int, int], int] = {}
        self._system_frames: list[_Frame] = []
        self._system_index: dict[tuple[int, int], int] = {}

    def get_page(self, db_oid: int, table_oid: int, page_id: int) -> Page:
        """Return a cached page, reading it from disk if needed."""
        if page_id == NULL_PAGE_ID:
            raise DbError("Invalid page id in get_page")
        key = (table_oid, page_id)
        if db_oid == SYSTEM_DATABASE_OID:
            frame_no = self._system_index.get(key)
            if frame_no is not None:
                return self._system_frames[frame_no].page
        else:
            frame_no = self._index.get(key)
            if frame_no is not None:
                self._strategy.access(frame_no)
                return self._frames[frame_no].page
        page = Page()
        page.data[:] = self._disk.read_page(file_path(db_oid, table_oid), page_id)
        self._add(_Frame(db_oid, table_oid, page_id, page))
        return page

    def new_page(self, db_oid: int, table_oid: int, page_id: int) -> Page:
        """Cache a fresh, zeroed page without reading the disk."""
        if page_id == NULL_PAGE_ID:
            raise DbError("Invalid page id in new_page")
        page = Page()
        self._add(_Frame(db_oid, table_oid, page_id, page))
        return page

    def flush(self, regular_only: bool = False) -> None:
        """Write dirty pages and empty the cache; system pages too unless ``regular_only``."""
        for frame_no in range(len(self._frames)):
            self._flush_frame(frame_no)
        self._frames.clear()
        self._strategy = LRUBufferStrategy()
        if not regular_only:
            for frame in self._system_frames:
                if frame.page.is_dirty:
                    self._disk.write_page(
                        file_path(frame.db_oid, frame.table_oid), frame.page_id, frame.page.data
                    )
                self._system_index.pop((frame.table_oid, frame.page_id), None)
            self._system_frames.clear()

    def clear(self) -> None:
        """Forget every cached page without writing, as a crash would."""
        self._frames.clear()
        self._index.clear()
        self._system_frames.clear()
        self._system_index.clear()
        self._strategy = LRUBufferStrategy()

    def _add(self, frame: _Frame) -> None:
        key = (frame.table_oid, frame.page_id)
        if frame.db_oid == SYSTEM_DATABASE_OID:
            self._system_index[key] = len(self._system_frames)
            self._system_frames.append(frame)
        elif len(self._frames) == BUFFER_SIZE:
            victim = self._strategy.evict()
            self._flush_frame(victim)
            self._strategy.access(victim)
            self._frames[victim] = frame
            self._index[key] = victim
        else:
            self._strategy.access(len(self._frames))
            self._index[key] = len(self._frames)
            self._frames.append(frame)

    def _flush_frame(self, frame_no: int) -> None:
        if frame_no >= BUFFER_SIZE:
            raise DbError("Invalid frame id in flush")
        frame = self._frames[frame_no]
        if frame.page.is_dirty:
            page_lsn = TablePage(frame.page).page_lsn
            self._log_manager.flush_page(frame.table_oid, frame.page_id, page_lsn)
            self._disk.write_page(
                file_path(frame.db_oid, frame.table_oid), frame.page_id, frame.page.data
            )
        self._index.pop((frame.table_oid, frame.page_id), None)