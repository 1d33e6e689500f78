# huadb

This package provides the building blocks of a small teaching database engine. It is written in plain Python and needs nothing outside the standard library.

## What is in it

| Module | Contents |
| --- | --- |
| `huadb.page` | `Page`: a page of `DB_PAGE_SIZE` (4096) bytes with an `is_dirty` flag and `set_dirty()`. |
| `huadb.disk` | `Disk`: keeps table files and a write-ahead log file below a base directory. The log file grows by whole segments. `Disk` works as a context manager. `file_path(db_oid, table_oid)` gives the relative path of a table file. |
| `huadb.buffer_strategy` | `BufferStrategy` (abstract) and `LRUBufferStrategy`. |
| `huadb.buffer_pool` | `BufferPool`: caches pages. Regular tables get a bounded cache with LRU eviction. System-database pages have their own unbounded cache. A dirty page is written only after `LogManager.flush_page` has forced the log up to the page's LSN. |
| `huadb.record_header` | `RecordHeader`: the 13-byte record header, with fields deleted, xmin, xmax and cid, plus `to_bytes` and `from_bytes`. |
| `huadb.table_page` | `TablePage`: a slotted page layout with a page LSN, a next-page id, and lower/upper free-space pointers. It provides `insert_record`, `delete_record` (sets the deleted flag), `get_record`, `update_record_in_place`, `set_next_page_id` and `set_page_lsn`. |
| `huadb.log_records` | `LogType` and the record classes `BeginLog`, `CommitLog`, `RollbackLog`, `InsertLog`, `DeleteLog`, `NewPageLog`, `BeginCheckpointLog` and `EndCheckpointLog`, each with `to_bytes()` and `size`. `deserialize(lsn, data)` decodes any of them. |
| `huadb.log_manager` | `LogManager`: assigns LSNs and buffers records. It maintains the active transaction table and the dirty page table. Commit and rollback force the log to disk. It also writes checkpoints and a master record. `recover()` rebuilds the next LSN, the active transactions and the dirty pages from the log on disk. |
| `huadb.transaction` | `TransactionManager`: hands out transaction ids, command ids and snapshots. `LockManager`: grants table and row locks (`IS`, `IX`, `S`, `SIX`, `X`) and upgrades them when needed. It never waits: a conflicting request returns `False`. Also `IsolationLevel` and `DeadlockType`. |
| `huadb.expressions` | Operator expressions: `Const`, `ColumnValue`, `ExpressionList`, `Arithmetic`, `Logic`, `NullTest`, `TypeCast` (to bool only) and `FuncCall` (`lower`, `upper`, `length`). |
| `huadb.comparison` | `Comparison` with `ComparisonType`: `=`, `!=`, `<`, `<=`, `>`, `>=`, `BETWEEN`, `IN`, `LIKE` and their negations. |
| `huadb.operators` | Plan nodes from `SeqScanOperator` to `AggregateOperator`, each with `to_string(indent_num)`. |
| `huadb.optimizer` | `Optimizer.optimize(plan)`: splits `AND` filters into separate filters and pushes them down. Single-table predicates go onto their scans. Predicates that span both sides of an inner nested-loop join go into the join condition. |

Expressions treat a record as a sequence of Python values, where `None` stands for NULL. Errors raised by the engine are instances of `huadb.errors.DbError`.

## Installing

```
pip install .
```

To install the test dependencies and run the tests:

```
pip install ".[test]"
pytest
```

## Examples

### Buffer replacement

```python
from huadb.buffer_strategy import LRUBufferStrategy

lru = LRUBufferStrategy()
for frame in (0, 1, 2):
    lru.access(frame)
lru.access(0)
assert lru.evict() == 1
```

### Transactions and snapshots

```python
from huadb.transaction import LockManager, TransactionManager

tm = TransactionManager(LockManager(), 1)
first = tm.begin()
second = tm.begin()
assert tm.snapshot(second) == {first}
tm.commit(first)
assert tm.active_transactions() == {second}
```

### Log records

```python
from huadb.log_records import CommitLog, deserialize

record = CommitLog(lsn=0, xid=7, prev_lsn=42)
copy = deserialize(0, record.to_bytes())
assert copy.xid == 7 and copy.prev_lsn == 42
```

### Pages on disk

```python
import tempfile

from huadb.disk import Disk, file_path
from huadb.page import Page
from huadb.record_header import RecordHeader
from huadb.table_page import TablePage

with tempfile.TemporaryDirectory() as base, Disk(base) as disk:
    path = file_path(1, 100)
    disk.create_file(path)
    page = Page()
    table_page = TablePage(page)
    table_page.init()
    slot = table_page.insert_record(RecordHeader().to_bytes() + b"hello")
    disk.write_page(path, 0, page.data)

    loaded = Page()
    loaded.data[:] = disk.read_page(path, 0)
    assert TablePage(loaded).get_record(slot)[13:] == b"hello"
```

### Expressions

```python
from huadb.comparison import Comparison, ComparisonType
from huadb.expressions import ColumnValue, Const, ValueType

predicate = Comparison(
    ComparisonType.GREATER, ColumnValue(0, ValueType.INT, "t.a", 4), Const(3)
)
assert predicate.evaluate([5]) is True
assert predicate.evaluate([None]) is None
```

## What it does not do

The package contains components, not a running database. Specifically:

- There is no SQL parser, binder, planner, catalog or executor. Plans are built by hand from the classes in `huadb.operators`, and nothing runs them.
- There is no command-line shell and no server.
- There is no table layer above `TablePage`, and no record encoding for column values. `TablePage` stores and returns raw bytes.
- `LogManager.recover()` restores only log bookkeeping. It does not redo or undo changes to pages, and log records carry no redo or undo actions.
- `Optimizer` does not reorder joins. `JoinOrderAlgorithm` is accepted, but the join order stays as planned, and table statistics are not used.