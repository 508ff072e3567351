"""
Sequence contexts: the cursor protocol every lazy range is built on.

A context bundles whatever is needed to interpret a cursor. Cursors are plain
values handed back by the primitives (``incr``/``decr`` return the moved
cursor), so immutable cursors such as integers work without any wrapping.
"""

import copy
import weakref
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Iterable, Iterator, Sequence


class _StreamEnd:
    """End marker of a ForwardContext, whose length is unknown until exhausted."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "STREAM_END"


STREAM_END = _StreamEnd()


class Context(ABC):
    """Forward traversal over a sequence"""

    # Whether cursors may be stored and reused (multi-pass)
    saveable = True

    @abstractmethod
    def peek_at(self, pos) -> Any:
        """Read the element at a cursor without moving it"""

    @abstractmethod
    def incr(self, pos):
        """Return the cursor one step forward"""

    @abstractmethod
    def equal_pos(self, x, y) -> bool:
        """Whether two cursors (or a cursor and an end marker) name the same place"""

    def save(self, pos):
        """Return an independent copy of a cursor"""
        return copy.copy(pos)

    def bounded(self, start, stop):
        """Lazy read-through view over [start, stop)"""
        from lazy import LazyRange
        return LazyRange(self, start, stop)


class BidirectionalContext(Context):
    """Traversal in both directions"""

    @abstractmethod
    def peek_before(self, pos) -> Any:
        """Read the element immediately preceding a cursor"""

    @abstractmethod
    def decr(self, pos):
        """Return the cursor one step backward"""


class SequenceContext(BidirectionalContext):
    """Integer cursors over an indexable sequence (list, tuple, str, range...)"""

    def __init__(self, seq: Sequence):
        self.seq = seq

    def begin(self) -> int:
        return 0

    def end(self) -> int:
        return len(self.seq)

    def peek_at(self, pos: int) -> Any:
        return self.seq[pos]

    def peek_before(self, pos: int) -> Any:
        return self.seq[pos - 1]

    def incr(self, pos: int) -> int:
        return pos + 1

    def decr(self, pos: int) -> int:
        return pos - 1

    def equal_pos(self, x: int, y: int) -> bool:
        return x == y

    def save(self, pos: int) -> int:
        return pos

    def __repr__(self):
        return f"SequenceContext({type(self.seq).__name__}, len={len(self.seq)})"


class StreamCursor:
    """Position in a ForwardContext; keeps the element it names buffered while alive"""

    __slots__ = ("index", "__weakref__")

    def __init__(self, index: int):
        self.index = index

    def __repr__(self):
        return f"StreamCursor({self.index})"


class ForwardContext(Context):
    """
    Forward-only context over any iterable.

    Elements pulled from the iterator are buffered so that cursors stay valid
    (multi-pass), but the total length is only known once the iterator runs
    dry. The end is therefore the STREAM_END marker rather than an index, and
    comparing a cursor against it may pull one more element from the source.

    Cursors handed out by begin() and incr() are StreamCursor objects. The
    buffer only keeps elements from the earliest live StreamCursor onward, so
    walking a long stream holds on to what is still reachable rather than
    everything read so far. Plain integer indexes are accepted too, but they
    cannot be tracked: once one is used the buffer stops releasing elements.
    """

    def __init__(self, iterable: Iterable):
        self._source: Iterator = iter(iterable)
        self._buffer: Deque[Any] = deque()
        self._offset = 0  # stream index of _buffer[0]
        self._exhausted = False
        self._live: "weakref.WeakSet[StreamCursor]" = weakref.WeakSet()
        self._untracked = False

    def _cursor(self, index: int) -> StreamCursor:
        cursor = StreamCursor(index)
        self._live.add(cursor)
        return cursor

    def begin(self) -> StreamCursor:
        return self._cursor(self._offset)

    def end(self):
        return STREAM_END

    @property
    def pulled(self) -> int:
        """Number of elements read from the source so far"""
        return self._offset + len(self._buffer)

    @property
    def buffered(self) -> int:
        """Number of pulled elements still held in memory"""
        return len(self._buffer)

    def _index(self, pos) -> int:
        if isinstance(pos, StreamCursor):
            return pos.index
        self._untracked = True
        return pos

    def _release(self):
        if self._untracked or not self._live:
            return
        low = min(cursor.index for cursor in self._live)
        while self._buffer and self._offset < low:
            self._buffer.popleft()
            self._offset += 1

    def _fill(self, index: int) -> bool:
        if index < self.pulled:
            return True
        self._release()
        while self.pulled <= index:
            if self._exhausted:
                return False
            try:
                self._buffer.append(next(self._source))
            except StopIteration:
                self._exhausted = True
                return False
        return True

    def peek_at(self, pos) -> Any:
        index = self._index(pos)
        if index < self._offset:
            raise IndexError(f"element {index} was released: no live cursor held it")
        if not self._fill(index):
            raise IndexError(f"cursor {index} is past the end of the stream")
        return self._buffer[index - self._offset]

    def incr(self, pos):
        if isinstance(pos, StreamCursor):
            return self._cursor(pos.index + 1)
        return pos + 1

    def equal_pos(self, x, y) -> bool:
        if x is STREAM_END and y is STREAM_END:
            return True
        if y is STREAM_END:
            return not self._fill(self._index(x))
        if x is STREAM_END:
            return not self._fill(self._index(y))
        return self._index(x) == self._index(y)

    def save(self, pos):
        return pos

    def __repr__(self):
        state = "exhausted" if self._exhausted else "open"
        return f"ForwardContext(pulled={self.pulled}, buffered={self.buffered}, {state})"
