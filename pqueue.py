from typing import Any, Callable, List, Optional


class TieBreakingPriorityQueue:
    """Binary min-heap that dequeues equal elements in insertion order.

    ``heapq`` makes no promise about which of two equal elements comes out
    first, and the shape of a Huffman tree depends on that choice. This queue
    stores its elements in a 1-based array (root at index 1, children of
    ``k`` at ``2k`` and ``2k + 1``) with a parallel array of insertion
    tickets. Elements are ordered by ``key`` (or their own ``<``) and ties
    are resolved in favour of the smaller ticket, i.e. the earlier insert.

    Encoders that break ties with a sibling-flag heap do not keep strict
    insertion order, so a COUNTS stream written by one of them can rebuild
    to a different tree here whenever equal weights are involved. TREE
    streams carry their shape and are unaffected.

    :ivar key: Optional function mapping an element to its sort key.
    :type key: Callable[[Any], Any] | None
    """

    INITIAL_CAPACITY = 10

    def __init__(self, key: Optional[Callable[[Any], Any]] = None):
        """Create an empty queue.

        :param key: Optional function mapping elements to comparable keys.
        :type key: Callable[[Any], Any] | None
        :returns: None
        :rtype: None
        """
        self.key = key
        self._heap: List[Any] = [None] * self.INITIAL_CAPACITY
        self._tickets: List[int] = [0] * self.INITIAL_CAPACITY
        self._size = 0
        self._next_ticket = 0

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_list()!r})"

    def size(self) -> int:
        """Number of queued elements."""
        return self._size

    def is_empty(self) -> bool:
        """Whether the queue holds no elements."""
        return self._size == 0

    def capacity(self) -> int:
        """Current length of the backing arrays (slot 0 unused)."""
        return len(self._heap)

    def as_list(self) -> List[Any]:
        """Elements in heap-array order, root first."""
        return self._heap[1:self._size + 1]

    def insert(self, element: Any) -> None:
        """Add ``element`` and restore heap order by percolating it up.

        :param element: Element to queue.
        :type element: Any
        :returns: None
        :rtype: None
        """
        if self._size + 1 >= len(self._heap):
            self._heap.extend([None] * len(self._heap))
            self._tickets.extend([0] * len(self._tickets))

        index = self._size + 1
        self._heap[index] = element
        self._tickets[index] = self._next_ticket
        self._next_ticket += 1
        self._size += 1

        while index > 1:
            parent = index // 2
            if not self._less(index, parent):
                break
            self._swap(index, parent)
            index = parent

    def peek(self) -> Any:
        """Return the minimum element without removing it, or ``None``."""
        return self._heap[1] if self._size else None

    def extract_min(self) -> Any:
        """Remove and return the minimum element.

        Follows the ``poll`` convention: an empty queue yields ``None``
        instead of raising, so callers test the result.

        :returns: The smallest (earliest among equals) element, or ``None``.
        :rtype: Any
        """
        if self._size == 0:
            return None
        result = self._heap[1]
        last = self._size
        self._heap[1] = self._heap[last]
        self._tickets[1] = self._tickets[last]
        self._heap[last] = None
        self._size -= 1

        index = 1
        while index * 2 <= self._size:
            left = index * 2
            right = left + 1
            child = left
            if right <= self._size and self._less(right, left):
                child = right
            if not self._less(child, index):
                break
            self._swap(index, child)
            index = child
        return result

    def _key(self, index: int) -> Any:
        element = self._heap[index]
        return element if self.key is None else self.key(element)

    def _less(self, i: int, j: int) -> bool:
        a, b = self._key(i), self._key(j)
        if a < b:
            return True
        if b < a:
            return False
        return self._tickets[i] < self._tickets[j]

    def _swap(self, i: int, j: int) -> None:
        self._heap[i], self._heap[j] = self._heap[j], self._heap[i]
        self._tickets[i], self._tickets[j] = self._tickets[j], self._tickets[i]
