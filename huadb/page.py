"""In-memory image of a fixed-size disk page."""

DB_PAGE_SIZE = 4096


class Page:
    """A page buffer of ``DB_PAGE_SIZE`` bytes with a dirty flag."""

    __slots__ = ("data", "is_dirty")

    def __init__(self) -> None:
        self.data = bytearray(DB_PAGE_SIZE)
        self.is_dirty = False

    def set_dirty(self) -> None:
        """Mark the page as modified since it was last written."""
        self.is_dirty = True