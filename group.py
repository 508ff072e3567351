"""
Lazy grouping of consecutive equivalent elements.

``group(proj, equiv, rng)`` is a range over the successive groupings of
``rng``. A grouping is a maximal run of consecutive elements whose criteria
(``proj(element)``) are equivalent under ``equiv``::

    classes = group(lambda i: i // 3, operator.eq, range(9))
    # [0, 1, 2], [3, 4, 5], [6, 7, 8]

If the elements are sorted by criterion with an ordering compatible with
``equiv``, the groupings are exactly the equivalence classes induced by
``proj`` and ``equiv``.

Only the first grouping is located when the range is built. Every later one
is found when a cursor steps onto it, so building costs O(first grouping)
rather than O(len(rng)).
"""

import logging
import operator
from dataclasses import dataclass
from typing import Any, Callable

from contexts import BidirectionalContext, Context
from lazy import LazyRange, as_range
from models import GroupingContract

logger = logging.getLogger(__name__)


def identity(x):
    return x


@dataclass(eq=False)
class GroupPosition:
    """
    Cursor naming one grouping [start, stop) of the grouped context.

    ``criterion`` caches at most one projected value so stepping onto a
    grouping never projects the same element twice in a row: after ``incr``
    it holds the criterion of the grouping just entered, after ``decr`` the
    criterion of the element that preceded the old start.
    """
    start: Any
    stop: Any
    criterion: Any = None
    cached: bool = False

    def emplace(self, criterion):
        self.criterion = criterion
        self.cached = True

    def reset(self):
        self.criterion = None
        self.cached = False


class GroupSentinel:
    """Terminal marker of a forward-only grouping range"""

    def __repr__(self):
        return "GroupSentinel()"


class GroupContext(Context):
    """
    Grouping engine over a forward-only context.

    The engine owns the projection, the equivalence and the grouped context;
    positions only hold cursors into it. The end of the grouped context is the
    only boundary it needs, so the terminal position is a GroupSentinel.
    """

    def __init__(self, projection: Callable, equivalence: Callable, context: Context, end):
        self.grouping_projection = projection
        self.grouping_equivalence = equivalence
        self.grouped_context = context
        self.end = end

    @property
    def saveable(self):
        return self.grouped_context.saveable

    def project(self, element):
        return self.grouping_projection(element)

    def equivalent(self, criterion, pos) -> bool:
        element = self.grouped_context.peek_at(pos)
        return bool(self.grouping_equivalence(criterion, self.project(element)))

    def next_grouping(self, criterion, pos):
        """First cursor after pos whose element is not equivalent to criterion, or the end"""
        ctx = self.grouped_context
        pos = ctx.incr(pos)
        while not ctx.equal_pos(pos, self.end) and self.equivalent(criterion, pos):
            pos = ctx.incr(pos)
        return pos

    def at_end(self, position: GroupPosition) -> bool:
        ctx = self.grouped_context
        return ctx.equal_pos(position.start, self.end) and ctx.equal_pos(position.stop, self.end)

    def equal_pos(self, x, y) -> bool:
        if isinstance(x, GroupSentinel):
            x, y = y, x
        if isinstance(x, GroupSentinel):
            return True
        if isinstance(y, GroupSentinel):
            return self.at_end(x)
        ctx = self.grouped_context
        return ctx.equal_pos(x.start, y.start) and ctx.equal_pos(x.stop, y.stop)

    def at(self, position: GroupPosition) -> LazyRange:
        """Read-through view of the grouping named by position"""
        ctx = self.grouped_context
        return ctx.bounded(ctx.save(position.start), ctx.save(position.stop))

    def peek_at(self, position: GroupPosition) -> LazyRange:
        return self.at(position)

    def incr(self, position: GroupPosition) -> GroupPosition:
        ctx = self.grouped_context
        if not ctx.equal_pos(position.stop, self.end):
            position.emplace(self.project(ctx.peek_at(position.stop)))
            position.start = ctx.save(position.stop)
            position.stop = self.next_grouping(position.criterion, position.stop)
        else:
            # Terminal: stay there
            position.start = ctx.save(position.stop)
            position.reset()
        return position

    def save(self, position):
        if isinstance(position, GroupSentinel):
            return position
        ctx = self.grouped_context
        return GroupPosition(ctx.save(position.start), ctx.save(position.stop),
                             position.criterion, position.cached)

    def __repr__(self):
        return f"{type(self).__name__}({self.grouped_context!r})"


class BidirectionalGroupContext(GroupContext, BidirectionalContext):
    """
    Grouping engine over a bidirectional, saveable context.

    Both ends of the grouped context are kept as cursors, so the terminal is
    an ordinary GroupPosition(end, end) and groupings can be walked backward.
    """

    def __init__(self, projection: Callable, equivalence: Callable, context: Context, start, end):
        super().__init__(projection, equivalence, context, end)
        self.start = start

    def equivalent_before(self, criterion, pos) -> bool:
        element = self.grouped_context.peek_before(pos)
        return bool(self.grouping_equivalence(criterion, self.project(element)))

    def prev_grouping(self, criterion, pos):
        """Earliest cursor before pos such that [cursor, pos) is equivalent to criterion"""
        ctx = self.grouped_context
        pos = ctx.decr(pos)
        while not ctx.equal_pos(self.start, pos) and self.equivalent_before(criterion, pos):
            pos = ctx.decr(pos)
        return pos

    def decr(self, position: GroupPosition) -> GroupPosition:
        ctx = self.grouped_context
        if ctx.equal_pos(position.start, self.start):
            # Already on the first grouping
            return position
        position.emplace(self.project(ctx.peek_before(position.start)))
        position.stop = ctx.save(position.start)
        position.start = self.prev_grouping(position.criterion, position.start)
        return position

    def peek_before(self, position: GroupPosition) -> LazyRange:
        """View of the grouping that ends where position starts"""
        if self.grouped_context.equal_pos(position.start, self.start):
            raise IndexError("no grouping before the first one")
        return self.at(self.decr(self.save(position)))


def _terminal(ctx, end) -> GroupPosition:
    return GroupPosition(ctx.save(end), ctx.save(end))


def _group(projection, equivalence, source) -> LazyRange:
    rng = as_range(source)
    ctx, first, last = rng.context, rng.start, rng.stop
    GroupingContract.enforce(projection, equivalence, ctx)

    bidirectional = isinstance(ctx, BidirectionalContext)
    if bidirectional:
        engine = BidirectionalGroupContext(projection, equivalence, ctx, ctx.save(first), ctx.save(last))
    else:
        engine = GroupContext(projection, equivalence, ctx, ctx.save(last))
    logger.debug(f"Grouping {ctx!r} with {type(engine).__name__}")

    if ctx.equal_pos(first, last):
        logger.debug("Empty source, no groupings")
        if bidirectional:
            return LazyRange(engine, _terminal(ctx, last), _terminal(ctx, last))
        return LazyRange(engine, _terminal(ctx, first), GroupSentinel())

    criterion = projection(ctx.peek_at(first))
    needle = engine.next_grouping(criterion, ctx.save(first))

    initial = GroupPosition(ctx.save(first), needle)
    initial.emplace(criterion)
    if bidirectional:
        return LazyRange(engine, initial, _terminal(ctx, last))
    return LazyRange(engine, initial, GroupSentinel())


def group(*args) -> LazyRange:
    """
    Create a range over the successive groupings of a source.

    group(proj, equiv, source): groupings of consecutive elements whose
        criteria ``proj(element)`` are equivalent under ``equiv``.
    group(source): groupings of consecutive equal elements, same as
        ``group(identity, operator.eq, source)``.

    The source may be a LazyRange or any iterable. Each grouping is a
    LazyRange view over the source. The result supports backward traversal
    when the source does (indexable sequences do; plain iterators do not).

    Raises ContractViolationError if proj or equiv is not callable or the
    source cannot be traversed more than once.
    """
    if len(args) == 1:
        return _group(identity, operator.eq, args[0])
    if len(args) == 3:
        return _group(*args)
    raise TypeError(f"group() takes 1 or 3 positional arguments but {len(args)} were given")


def group_by(projection, source) -> LazyRange:
    """Groupings whose projected values compare equal; same as group(projection, operator.eq, source)"""
    return _group(projection, operator.eq, source)
