import operator
from collections.abc import Sequence

from contexts import BidirectionalContext, Context, ForwardContext, SequenceContext

_MISSING = object()


class LazyRange:
    """
    A lazy, read-through window [start, stop) over a context. Nothing is
    copied: elements are read from the context only when you iterate, and
    every iteration walks its own copy of the start cursor.
    """
    def __init__(self, context: Context, start, stop):
        self.context = context
        self.start = start
        self.stop = stop

    # --------- capabilities ----------
    @property
    def bidirectional(self):
        return isinstance(self.context, BidirectionalContext)

    @property
    def saveable(self):
        return self.context.saveable

    def is_empty(self):
        return self.context.equal_pos(self.start, self.stop)

    # --------- chainable transformations (lazy) ----------
    def group(self, projection=None, equivalence=None):
        """Range over the successive groupings of this range"""
        from group import group, identity
        return group(identity if projection is None else projection,
                     operator.eq if equivalence is None else equivalence, self)

    def group_by(self, projection):
        """Groupings whose projected values compare equal"""
        from group import group_by
        return group_by(projection, self)

    # --------- forcing evaluation ----------
    def to_list(self):
        return list(self)

    # --------- reducing operations (force evaluation) ----------
    def reduce(self, fn, initial=_MISSING):
        """Apply a function of two arguments cumulatively to items, from left to right"""
        from functools import reduce as builtin_reduce
        if initial is _MISSING:
            return builtin_reduce(fn, self)
        return builtin_reduce(fn, self, initial)

    def sum(self, start=0):
        """Return the sum of all elements"""
        total = start
        for item in self:
            total += item
        return total

    def count(self):
        """Return the count of elements"""
        count = 0
        for _ in self:
            count += 1
        return count

    def min(self, default=_MISSING):
        """Return the minimum element"""
        if default is _MISSING:
            return min(self)
        return min(self, default=default)

    def max(self, default=_MISSING):
        """Return the maximum element"""
        if default is _MISSING:
            return max(self)
        return max(self, default=default)

    def first(self, default=None):
        """Return the first element, or default if empty"""
        for item in self:
            return item
        return default

    def last(self, default=None):
        """Return the last element, or default if empty"""
        if self.bidirectional:
            for item in reversed(self):
                return item
            return default
        last_item = default
        for item in self:
            last_item = item
        return last_item

    def any(self, pred=None):
        """Return True if any element is truthy (or satisfies predicate)"""
        if pred is None:
            return any(self)
        return any(pred(x) for x in self)

    def all(self, pred=None):
        """Return True if all elements are truthy (or satisfy predicate)"""
        if pred is None:
            return all(self)
        return all(pred(x) for x in self)

    def find(self, pred):
        """Return the first element that satisfies the predicate, or None"""
        for item in self:
            if pred(item):
                return item
        return None

    # --------- iterator protocol ----------
    def __iter__(self):
        # The walk holds the context and its own cursor, not the range
        return _walk(self.context, self.context.save(self.start), self.stop)

    def __reversed__(self):
        if not self.bidirectional:
            raise TypeError(f"{type(self.context).__name__} cannot be traversed backward")
        return self._iter_backward()

    def _iter_backward(self):
        ctx = self.context
        pos = ctx.save(self.stop)
        while not ctx.equal_pos(pos, self.start):
            pos = ctx.decr(pos)
            yield ctx.peek_at(pos)

    def __repr__(self):
        return f"LazyRange({self.context!r}, {self.start!r}, {self.stop!r})"


def _walk(ctx, pos, stop):
    while not ctx.equal_pos(pos, stop):
        yield ctx.peek_at(pos)
        pos = ctx.incr(pos)


def as_range(source):
    """
    Wrap a source into a LazyRange. Indexable sequences get a bidirectional
    SequenceContext; any other iterable is read through a ForwardContext.
    """
    if isinstance(source, LazyRange):
        return source
    if isinstance(source, Sequence):
        ctx = SequenceContext(source)
        return LazyRange(ctx, ctx.begin(), ctx.end())
    ctx = ForwardContext(source)
    return LazyRange(ctx, ctx.begin(), ctx.end())
