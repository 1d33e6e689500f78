"""Errors raised by the database engine."""


class DbError(Exception):
    """Raised when a storage, transaction or planning operation fails."""