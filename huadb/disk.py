"""File access for table pages and the write-ahead log."""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from huadb.errors import DbError
from huadb.page import DB_PAGE_SIZE

LOG_NAME = "huadb.log"
LOG_SEGMENT_SIZE = 1 << 20
SYSTEM_DATABASE_OID = 0


def file_path(db_oid: int, table_oid: int) -> str:
    """Relative path of the file holding a table."""
    return f"{db_oid}/{table_oid}"


def _oids(path: str) -> tuple[int, int]:
    db_oid, table_oid = path.split("/")[:2]
    return int(db_oid), int(table_oid)


class Disk:
    """Reads and writes pages and log bytes below a base directory."""

    def __init__(self, base_path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self._files: dict[str, BinaryIO] = {}
        self.access_count = 0

        log_path = self._base / LOG_NAME
        if not log_path.is_file():
            with open(log_path, "wb") as log_file:
                log_file.truncate(LOG_SEGMENT_SIZE)
            self._log_segments = 1
        else:
            size = log_path.stat().st_size
            if size // LOG_SEGMENT_SIZE == 0 or size % LOG_SEGMENT_SIZE != 0:
                raise DbError("log file size is not a multiple of segment size")
            self._log_segments = size // LOG_SEGMENT_SIZE
        self._log = open(log_path, "r+b")

    def __enter__(self) -> "Disk":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _resolve(self, path: str) -> Path:
        return self._base / path

    def file_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def is_empty_file(self, path: str) -> bool:
        if not self.file_exists(path):
            raise DbError(f"file {path} does not exist")
        return self._resolve(path).stat().st_size == 0

    def create_file(self, path: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.open("wb").close()

    def remove_file(self, path: str) -> None:
        handle = self._files.pop(path, None)
        if handle is not None:
            handle.close()
        try:
            os.remove(self._resolve(path))
        except FileNotFoundError:
            pass

    def _handle(self, path: str) -> BinaryIO:
        handle = self._files.get(path)
        if handle is None:
            try:
                handle = open(self._resolve(path), "r+b")
            except OSError as exc:
                raise DbError(f"file {path} does not exist") from exc
            self._files[path] = handle
        return handle

    def _count_access(self, path: str) -> None:
        if _oids(path)[0] != SYSTEM_DATABASE_OID:
            self.access_count += 1

    def read_page(self, path: str, page_id: int) -> bytes:
        """Read one page; raises DbError if the file is too short."""
        self._count_access(path)
        handle = self._handle(path)
        handle.seek(page_id * DB_PAGE_SIZE)
        data = handle.read(DB_PAGE_SIZE)
        if len(data) != DB_PAGE_SIZE:
            raise DbError(
                f"{path} read page {page_id} failed: read {len(data)} bytes, "
                f"expected {DB_PAGE_SIZE} bytes"
            )
        return data

    def write_page(self, path: str, page_id: int, data) -> None:
        """Write one page; does nothing if the file does not exist."""
        if not self.file_exists(path):
            return
        if len(data) != DB_PAGE_SIZE:
            raise DbError(f"page data must be {DB_PAGE_SIZE} bytes, got {len(data)}")
        handle = self._handle(path)
        self._count_access(path)
        handle.seek(page_id * DB_PAGE_SIZE)
        handle.write(bytes(data))
        handle.flush()

    def read_log(self, offset: int, count: int) -> bytes:
        self._log.seek(offset)
        data = self._log.read(count)
        if len(data) != count:
            raise DbError(
                f"read log failed (offset: {offset}, count: {count}, read: {len(data)})"
            )
        return data

    def write_log(self, offset: int, data) -> None:
        """Write log bytes, growing the log file by whole segments as needed."""
        end = offset + len(data)
        if end > self._log_segments * LOG_SEGMENT_SIZE:
            while end > self._log_segments * LOG_SEGMENT_SIZE:
                self._log_segments += 1
            self._log.truncate(self._log_segments * LOG_SEGMENT_SIZE)
        self._log.seek(offset)
        self._log.write(bytes(data))
        self._log.flush()

    def close(self) -> None:
        for handle in self._files.values():
            handle.close()
        self._files.clear()
        if not self._log.closed:
            self._log.close()