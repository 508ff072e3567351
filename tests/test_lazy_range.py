import pytest

from contexts import ForwardContext, SequenceContext
from lazy import LazyRange, as_range


class TestAsRange:
    """Test wrapping Python iterables into ranges"""

    def test_sequences_are_bidirectional(self):
        """Test lists, tuples, strings and ranges get a SequenceContext"""
        for source in ([1, 2], (1, 2), "ab", range(2)):
            rng = as_range(source)
            assert isinstance(rng.context, SequenceContext)
            assert rng.bidirectional

    def test_iterators_are_forward_only(self):
        """Test generators and iterators get a ForwardContext"""
        rng = as_range(x for x in [1, 2])
        assert isinstance(rng.context, ForwardContext)
        assert not rng.bidirectional
        assert rng.saveable

    def test_ranges_pass_through(self):
        """Test an existing LazyRange is returned as is"""
        rng = as_range([1])
        assert as_range(rng) is rng


class TestTraversal:
    """Test iterating a range in both directions"""

    def test_forward(self, make_range):
        """Test forward iteration over both kinds of context"""
        assert list(make_range([3, 1, 2])) == [3, 1, 2]

    def test_backward(self):
        """Test reversed() over a sequence range"""
        assert list(reversed(as_range([3, 1, 2]))) == [2, 1, 3]

    def test_subrange(self):
        """Test a window over part of a sequence"""
        ctx = SequenceContext(list(range(10)))
        window = LazyRange(ctx, 3, 6)
        assert window.to_list() == [3, 4, 5]
        assert list(reversed(window)) == [5, 4, 3]

    def test_empty(self, make_range):
        """Test empty ranges"""
        rng = make_range([])
        assert rng.is_empty()
        assert rng.to_list() == []


class TestReductions:
    """Test reducing operations force evaluation correctly"""

    def test_sum_and_count(self, make_range):
        """Test sum and count"""
        assert make_range([1, 2, 3, 4, 5]).sum() == 15
        assert make_range([1, 2, 3, 4, 5]).count() == 5
        assert make_range([]).sum() == 0

    def test_min_max(self, make_range):
        """Test min and max, with and without defaults"""
        assert make_range([4, 1, 9]).min() == 1
        assert make_range([4, 1, 9]).max() == 9
        assert make_range([]).min(default=0) == 0
        with pytest.raises(ValueError):
            make_range([]).max()

    def test_first_last(self, make_range):
        """Test first and last"""
        assert make_range([1, 2, 3]).first() == 1
        assert make_range([1, 2, 3]).last() == 3
        assert make_range([]).first("none") == "none"
        assert make_range([]).last("none") == "none"

    def test_reduce(self, make_range):
        """Test reduce with and without an initial value"""
        assert make_range([1, 2, 3, 4, 5]).reduce(lambda a, b: a * b) == 120
        assert make_range([1, 2, 3]).reduce(lambda a, b: a + b, 0) == 6
        assert make_range([]).reduce(lambda a, b: a + b, 10) == 10

    def test_boolean_operations(self, make_range):
        """Test any, all and find"""
        data = [1, 2, 3, 4, 5]
        assert make_range(data).any(lambda x: x > 3)
        assert not make_range(data).any(lambda x: x > 10)
        assert make_range(data).all(lambda x: x > 0)
        assert not make_range(data).all(lambda x: x > 3)
        assert make_range(data).find(lambda x: x > 3) == 4
        assert make_range(data).find(lambda x: x > 10) is None

    def test_reductions_stop_early(self):
        """Test first() and find() read only what they need"""
        ctx = ForwardContext(iter(range(1000)))
        rng = LazyRange(ctx, 0, ctx.end())
        assert rng.find(lambda x: x == 5) == 5
        assert ctx.pulled == 6
