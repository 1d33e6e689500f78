"""Transaction bookkeeping and multi-granularity locking."""

from __future__ import annotations

from enum import Enum
from typing import Hashable

from huadb.errors import DbError

NULL_XID = 0
NULL_CID = 0
FIRST_CID = 0


class LockType(Enum):
    IS = "IS"
    IX = "IX"
    S = "S"
    SIX = "SIX"
    X = "X"


class LockGranularity(Enum):
    TABLE = "table"
    ROW = "row"


class DeadlockType(Enum):
    NONE = "none"
    WAIT_DIE = "wait_die"
    WOUND_WAIT = "wound_wait"
    DETECTION = "detection"


class IsolationLevel(Enum):
    READ_COMMITTED = "read_committed"
    REPEATABLE_READ = "repeatable_read"
    SERIALIZABLE = "serializable"


DEFAULT_ISOLATION_LEVEL = IsolationLevel.READ_COMMITTED

_COMPATIBLE = {
    LockType.IS: {LockType.IS, LockType.IX, LockType.S, LockType.SIX},
    LockType.IX: {LockType.IS, LockType.IX},
    LockType.S: {LockType.IS, LockType.S},
    LockType.SIX: {LockType.IS},
    LockType.X: set(),
}

_COVERS = {
    LockType.IS: {LockType.IS},
    LockType.IX: {LockType.IS, LockType.IX},
    LockType.S: {LockType.IS, LockType.S},
    LockType.SIX: {LockType.IS, LockType.IX, LockType.S, LockType.SIX},
    LockType.X: set(LockType),
}


def _compatible(first: LockType, second: LockType) -> bool:
    return second in _COMPATIBLE[first]


def _upgrade(held: LockType, requested: LockType) -> LockType:
    if requested in _COVERS[held]:
        return held
    if held in _COVERS[requested]:
        return requested
    return LockType.SIX


class LockManager:
    """Grants table and row locks without waiting; a conflict is refused."""

    def __init__(self) -> None:
        self._locks: dict[tuple, dict[int, LockType]] = {}
        self.deadlock_type = DeadlockType.NONE

    def _acquire(self, key: tuple, xid: int, lock_type: LockType) -> bool:
        holders = self._locks.setdefault(key, {})
        held = holders.get(xid)
        wanted = lock_type if held is None else _upgrade(held, lock_type)
        for other, other_type in holders.items():
            if other != xid and not _compatible(wanted, other_type):
                if not holders:
                    del self._locks[key]
                return False
        holders[xid] = wanted
        return True

    def lock_table(self, xid: int, lock_type: LockType, oid: int) -> bool:
        """Lock a table; returns False if another transaction holds a conflicting lock."""
        return self._acquire((LockGranularity.TABLE, oid), xid, lock_type)

    def lock_row(self, xid: int, lock_type: LockType, oid: int, rid: Hashable) -> bool:
        """Lock a row; returns False if another transaction holds a conflicting lock."""
        return self._acquire((LockGranularity.ROW, oid, rid), xid, lock_type)

    def release_locks(self, xid: int) -> None:
        for key in list(self._locks):
            holders = self._locks[key]
            holders.pop(xid, None)
            if not holders:
                del self._locks[key]

    def set_deadlock_type(self, deadlock_type: DeadlockType) -> None:
        self.deadlock_type = deadlock_type


class TransactionManager:
    """Hands out transaction ids and tracks active transactions and snapshots."""

    def __init__(self, lock_manager: LockManager, next_xid: int = 1) -> None:
        self._lock_manager = lock_manager
        self._next_xid = next_xid
        self._cids: dict[int, int] = {}
        self._snapshots: dict[int, frozenset[int]] = {}

    @property
    def next_xid(self) -> int:
        return self._next_xid

    def get_cid_and_increment(self, xid: int) -> int:
        if xid not in self._cids:
            raise DbError(f"xid {xid} not found in get_cid_and_increment")
        cid = self._cids[xid]
        self._cids[xid] = cid + 1
        return cid

    def set_next_xid(self, next_xid: int) -> None:
        """Raise the next transaction id; never lowers it."""
        self._next_xid = max(self._next_xid, next_xid)

    def begin(self) -> int:
        xid = self._next_xid
        self._next_xid += 1
        self._snapshots[xid] = frozenset(self._cids)
        self._cids[xid] = FIRST_CID
        return xid

    def _finish(self, xid: int, action: str) -> None:
        if xid not in self._cids:
            raise DbError(f"xid {xid} not found in cid table in {action}")
        if xid not in self._snapshots:
            raise DbError(f"xid {xid} not found in snapshot table in {action}")
        self._lock_manager.release_locks(xid)
        del self._cids[xid]
        del self._snapshots[xid]

    def commit(self, xid: int) -> None:
        self._finish(xid, "commit")

    def rollback(self, xid: int) -> None:
        self._finish(xid, "rollback")

    def snapshot(self, xid: int) -> set[int]:
        """Transactions that were active when ``xid`` began."""
        if xid not in self._snapshots:
            raise DbError(f"xid {xid} not found in snapshot table in snapshot")
        return set(self._snapshots[xid])

    def active_transactions(self) -> set[int]:
        return set(self._cids)