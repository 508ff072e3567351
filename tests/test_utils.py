import operator

import pytest

import utils
from utils import (
    EQUIVALENCE_REGISTRY,
    PROJECTION_REGISTRY,
    CallCounter,
    get_performance_summary,
    measure_performance,
    process_grouping,
    register_projection,
    resolve_equivalence,
    resolve_projection,
    validate_maximality,
    validate_partition,
)
from group import group


class TestRegistries:
    """Test named projections and equivalences"""

    def test_builtin_names(self):
        """Test the built-in registrations are present"""
        for name in ["identity", "floordiv", "mod", "field", "length", "type", "sign"]:
            assert name in PROJECTION_REGISTRY, f"Missing projection {name}"
        for name in ["equal", "casefold", "same_type"]:
            assert name in EQUIVALENCE_REGISTRY, f"Missing equivalence {name}"

    def test_parameterised_projections(self):
        """Test projections built from an argument"""
        assert resolve_projection("floordiv", 3)(7) == 2
        assert resolve_projection("mod", 4)(10) == 2
        assert resolve_projection("field", "k")({"k": "v"}) == "v"
        assert resolve_projection("sign")(-5) == -1
        assert resolve_projection("type")("x") == "str"

    def test_invalid_projection_arguments(self):
        """Test bad arguments are rejected when the projection is built"""
        with pytest.raises(ValueError):
            resolve_projection("floordiv", 0)
        with pytest.raises(ValueError):
            resolve_projection("field")
        with pytest.raises(ValueError):
            resolve_projection("mod", "abc")
        with pytest.raises(ValueError):
            resolve_projection("floordiv", [2])
        with pytest.raises(ValueError):
            resolve_projection("mod", {"n": 2})

    def test_unknown_names(self):
        """Test unknown names raise ValueError"""
        with pytest.raises(ValueError):
            resolve_projection("nope")
        with pytest.raises(ValueError):
            resolve_equivalence("nope")

    def test_casefold_equivalence(self):
        """Test the case-insensitive equivalence"""
        casefold = resolve_equivalence("casefold")
        assert casefold("Straße", "STRASSE")
        assert not casefold("a", "b")

    def test_register_projection(self, monkeypatch):
        """Test the registration decorator"""
        monkeypatch.setattr("utils.PROJECTION_REGISTRY", dict(PROJECTION_REGISTRY))

        @register_projection("double")
        def _double(arg=None):
            return lambda x: x * 2

        import utils
        assert utils.resolve_projection("double")(4) == 8


class TestValidators:
    """Test partition and maximality validators"""

    def test_partition(self):
        """Test partition accepts exact splits and rejects anything else"""
        assert validate_partition([1, 1, 2], [[1, 1], [2]])
        assert not validate_partition([1, 1, 2], [[1], [2]])
        assert not validate_partition([1, 2], [[2], [1]])
        assert validate_partition([], [])

    def test_maximality(self):
        """Test maximality detects merged and split groupings"""
        assert validate_maximality([[1, 1], [2]])
        assert not validate_maximality([[1, 2]]), "Mixed grouping must fail"
        assert not validate_maximality([[1], [1]]), "Split grouping must fail"
        assert not validate_maximality([[]]), "Empty grouping must fail"

    def test_maximality_with_projection(self):
        """Test maximality under a custom criterion"""
        groupings = [view.to_list() for view in group(lambda x: x // 3, operator.eq, range(9))]
        assert validate_maximality(groupings, lambda x: x // 3)


class TestProcessGrouping:
    """Test the JSON-friendly grouping helper"""

    def test_basic(self, clean_metrics):
        """Test default grouping of a list"""
        result = process_grouping([1, 1, 2, 2, 2, 3])
        assert result["groups"] == [[1, 1], [2, 2, 2], [3]]
        assert result["keys"] == [1, 2, 3]
        assert result["group_count"] == 3
        assert result["performance"]["projection_calls"] == 8
        assert result["performance"]["input_size"] == 6

    def test_reverse_and_limit(self):
        """Test reversed output limited to max_groups"""
        result = process_grouping(list(range(9)), "floordiv", 3, reverse=True, max_groups=2)
        assert result["groups"] == [[6, 7, 8], [3, 4, 5]]
        assert result["keys"] == [2, 1]
        assert result["reversed"] is True

    def test_field_projection_with_casefold(self):
        """Test grouping records by a field, ignoring case"""
        records = [{"city": "Paris"}, {"city": "PARIS"}, {"city": "Rome"}]
        result = process_grouping(records, "field", "city", "casefold")
        assert result["group_count"] == 2
        assert result["groups"][0] == records[:2]

    def test_failure_returns_error(self):
        """Test errors during grouping are reported, not raised"""
        result = process_grouping(["a", "b"], "floordiv", 2)
        assert result["error_type"] == "TypeError"
        assert result["groups"] == []
        assert result["performance"]["error"] is True
        assert result["performance"]["processing_time_ms"] >= 0

    def test_records_metrics(self, clean_metrics):
        """Test runs are added to the performance summary"""
        process_grouping([1, 2])
        process_grouping([3, 3])
        assert get_performance_summary()["total_operations"] == 2

    def test_runs_are_measured_by_name(self, clean_metrics):
        """Test each run is recorded under its projection and equivalence names"""
        process_grouping([1, 1, 2], "floordiv", 2, "equal")
        process_grouping(["a", "b"], "floordiv", 2)
        operations = list(utils._performance_metrics["operations"])
        assert [op["operation"] for op in operations] == ["group_floordiv_equal"] * 2
        assert [op["success"] for op in operations] == [True, False]


class TestPerformanceMeasurement:
    """Test measure_performance and the summary"""

    def test_measure_success(self, clean_metrics):
        """Test a successful measurement"""
        info = measure_performance("grouping", lambda: [g.to_list() for g in group([1, 1, 2])])
        assert info["success"] is True
        assert info["result"] == [[1, 1], [2]]
        assert info["result_size"] == 2
        assert info["execution_time_ms"] >= 0

    def test_measure_failure(self, clean_metrics):
        """Test failures are recorded and re-raised"""
        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            measure_performance("boom", boom)
        assert get_performance_summary()["total_operations"] == 1

    def test_empty_summary(self, clean_metrics):
        """Test the summary before any measurement"""
        summary = get_performance_summary()
        assert summary["total_operations"] == 0
        assert summary["avg_time_ms"] == 0.0

    def test_recorded_operations_are_capped(self, clean_metrics, monkeypatch):
        """Test only the most recent operations are kept while totals keep counting"""
        monkeypatch.setattr(utils, "MAX_RECORDED_OPERATIONS", 3)
        utils.clear_performance_metrics()
        for _ in range(5):
            measure_performance("grouping", lambda: [g.to_list() for g in group([1, 2])])
        assert len(utils._performance_metrics["operations"]) == 3
        assert get_performance_summary()["total_operations"] == 5

    def test_call_counter(self):
        """Test CallCounter forwards calls and counts them"""
        counter = CallCounter(abs)
        assert counter(-3) == 3
        assert counter(2) == 2
        assert counter.calls == 2
