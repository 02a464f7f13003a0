import heapq
import itertools
from typing import Generic, TypeVar

T = TypeVar("T")


class PriorityQueue(Generic[T]):
    """Max-priority queue keyed by a float score.

    Backed by a binary heap (`heapq` is a min-heap, so scores are negated).
    Items pushed with equal scores are popped in insertion order, which keeps
    candidate selection deterministic.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, T]] = []
        self._counter = itertools.count()

    def push(self, score: float, item: T) -> None:
        """add an item with the given priority score"""
        heapq.heappush(self._heap, (-score, next(self._counter), item))

    def pop(self) -> tuple[float, T]:
        """remove and return the (score, item) pair with the highest score

        Raises:
            IndexError: if the queue is empty
        """
        if not self._heap:
            raise IndexError("pop from an empty priority queue")
        neg_score, _, item = heapq.heappop(self._heap)
        return -neg_score, item

    def peek(self) -> tuple[float, T]:
        """return the (score, item) pair with the highest score without removing it

        Raises:
            IndexError: if the queue is empty
        """
        if not self._heap:
            raise IndexError("peek from an empty priority queue")
        neg_score, _, item = self._heap[0]
        return -neg_score, item

    def drain(self):
        """Yield (score, item) pairs in priority order, removing them from the queue."""
        while self._heap:
            yield self.pop()

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
