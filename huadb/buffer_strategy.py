"""Buffer replacement strategies."""

from abc import ABC, abstractmethod
from collections import OrderedDict

from huadb.errors import DbError


class BufferStrategy(ABC):
    """Decides which buffer frame to evict."""

    @abstractmethod
    def access(self, frame_no: int) -> None:
        """Record that a frame was used."""

    @abstractmethod
    def evict(self) -> int:
        """Choose a frame to evict and forget it."""


class LRUBufferStrategy(BufferStrategy):
    """Evicts the least recently accessed frame."""

    def __init__(self) -> None:
        self._order: "OrderedDict[int, None]" = OrderedDict()

    def access(self, frame_no: int) -> None:
        self._order.pop(frame_no, None)
        self._order[frame_no] = None

    def evict(self) -> int:
        if not self._order:
            raise DbError("No frame to evict")
        frame_no, _ = self._order.popitem(last=False)
        return frame_no

    def __len__(self) -> int:
        return len(self._order)