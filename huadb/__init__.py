"""Pages, disk and buffer pool, write-ahead log records and manager, transactions and locks, and query-plan expressions, operators and optimizer for a small relational database."""

__version__ = "2024.0.0"