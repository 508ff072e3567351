"""
Utility functions for the grouping service

Registries of named projections and equivalences, performance measurement,
and validators for the partition and maximality properties of groupings.
"""

import time
import gc
import logging
import operator
import tracemalloc
from collections import deque
from itertools import islice
from typing import Any, Callable, Dict, List, Optional

from group import group, identity
from models import ContractViolationError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Named projection factories: factory(arg) -> projection
PROJECTION_REGISTRY: Dict[str, Callable[[Any], Callable[[Any], Any]]] = {}

# Named equivalence relations
EQUIVALENCE_REGISTRY: Dict[str, Callable[[Any, Any], bool]] = {}

# Most recent operations kept in the metrics; counters cover every run
MAX_RECORDED_OPERATIONS = 1000

# Global performance tracking
_performance_metrics = {
    "operations": deque(maxlen=MAX_RECORDED_OPERATIONS),
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


def register_projection(name: str):
    """Register a projection factory under name"""
    def decorator(factory):
        PROJECTION_REGISTRY[name] = factory
        logger.info(f"Registered projection: {name}")
        return factory
    return decorator


def register_equivalence(name: str):
    """Register an equivalence relation under name"""
    def decorator(relation):
        EQUIVALENCE_REGISTRY[name] = relation
        logger.info(f"Registered equivalence: {name}")
        return relation
    return decorator


@register_projection("identity")
def _identity_projection(arg=None):
    return identity


def _integer_arg(name: str, arg, default: int) -> int:
    if arg is None:
        return default
    try:
        return int(arg)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} projection needs an integer argument, got {arg!r}") from e


@register_projection("floordiv")
def _floordiv_projection(arg=None):
    divisor = _integer_arg("floordiv", arg, 1)
    if divisor == 0:
        raise ValueError("floordiv projection needs a non-zero divisor")
    return lambda x: x // divisor


@register_projection("mod")
def _mod_projection(arg=None):
    modulus = _integer_arg("mod", arg, 2)
    if modulus == 0:
        raise ValueError("mod projection needs a non-zero modulus")
    return lambda x: x % modulus


@register_projection("field")
def _field_projection(arg=None):
    if arg is None:
        raise ValueError("field projection needs a field name")

    def project(item):
        if isinstance(item, dict):
            return item.get(arg)
        return getattr(item, str(arg), None)
    return project


@register_projection("length")
def _length_projection(arg=None):
    return len


@register_projection("type")
def _type_projection(arg=None):
    return lambda x: type(x).__name__


@register_projection("sign")
def _sign_projection(arg=None):
    return lambda x: (x > 0) - (x < 0)


register_equivalence("equal")(operator.eq)


@register_equivalence("casefold")
def _casefold_equivalence(a, b):
    return str(a).casefold() == str(b).casefold()


@register_equivalence("same_type")
def _same_type_equivalence(a, b):
    return type(a) is type(b)


def resolve_projection(name: str, arg: Any = None) -> Callable[[Any], Any]:
    """Build the projection registered under name"""
    if name not in PROJECTION_REGISTRY:
        raise ValueError(f"Unknown projection: {name}. Available: {sorted(PROJECTION_REGISTRY)}")
    return PROJECTION_REGISTRY[name](arg)


def resolve_equivalence(name: str) -> Callable[[Any, Any], bool]:
    """Look up the equivalence registered under name"""
    if name not in EQUIVALENCE_REGISTRY:
        raise ValueError(f"Unknown equivalence: {name}. Available: {sorted(EQUIVALENCE_REGISTRY)}")
    return EQUIVALENCE_REGISTRY[name]


class CallCounter:
    """Wraps a callable and counts its invocations"""

    def __init__(self, fn: Callable):
        self.fn = fn
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        return self.fn(*args, **kwargs)


def measure_performance(operation_name: str, func, *args, **kwargs) -> Dict[str, Any]:
    """Measure performance of a function call with memory tracking"""
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)

        execution_time_ms = (time.perf_counter() - start_time) * 1000
        current, peak = tracemalloc.get_traced_memory()
        memory_mb = peak / 1024 / 1024

        performance_info = {
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": memory_mb,
            "success": True,
            "result_size": len(result) if hasattr(result, "__len__") else None,
            "timestamp": time.time()
        }
        _record(performance_info)
        return {**performance_info, "result": result}

    except Exception as e:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        current, peak = tracemalloc.get_traced_memory()

        _record({
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": peak / 1024 / 1024,
            "success": False,
            "error": str(e),
            "timestamp": time.time()
        })
        logger.error(f"{operation_name} failed after {execution_time_ms:.2f}ms: {e}")
        raise

    finally:
        tracemalloc.stop()


def _record(performance_info: Dict[str, Any]):
    _performance_metrics["operations"].append(performance_info)
    _performance_metrics["total_time_ms"] += performance_info["execution_time_ms"]
    _performance_metrics["total_memory_mb"] += performance_info["memory_usage_mb"]
    _performance_metrics["operation_count"] += 1


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _performance_metrics["operation_count"]
    if count == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "operations": deque(maxlen=MAX_RECORDED_OPERATIONS),
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0
    }


def validate_partition(source: List[Any], groupings: List[List[Any]]) -> bool:
    """Concatenating the groupings must give back the source, nothing skipped or repeated"""
    flattened = [item for grouping in groupings for item in grouping]
    return flattened == list(source)


def validate_maximality(groupings: List[List[Any]], projection: Callable = identity,
                        equivalence: Callable = operator.eq) -> bool:
    """Each grouping is non-empty and internally equivalent; adjacent groupings differ"""
    previous_criterion = None
    for index, grouping in enumerate(groupings):
        if not grouping:
            return False
        criterion = projection(grouping[0])
        if not all(equivalence(criterion, projection(item)) for item in grouping[1:]):
            return False
        if index > 0 and equivalence(previous_criterion, criterion):
            return False
        previous_criterion = criterion
    return True


def process_grouping(source_data: List[Any], projection: str = "identity",
                     projection_arg: Any = None, equivalence: str = "equal",
                     reverse: bool = False, max_groups: Optional[int] = None) -> Dict[str, Any]:
    """Group source_data with named projection/equivalence; JSON-friendly result"""
    projection_fn = CallCounter(resolve_projection(projection, projection_arg))
    equivalence_fn = resolve_equivalence(equivalence)

    def run_grouping():
        grouped = group(projection_fn, equivalence_fn, source_data)
        groupings = reversed(grouped) if reverse else iter(grouped)
        if max_groups:
            groupings = islice(groupings, max_groups)
        return [view.to_list() for view in groupings]

    try:
        info = measure_performance(f"group_{projection}_{equivalence}", run_grouping)
    except ContractViolationError:
        raise
    except Exception as e:
        return {
            "error": str(e),
            "error_type": type(e).__name__,
            "groups": [],
            "performance": {
                "processing_time_ms": _performance_metrics["operations"][-1]["execution_time_ms"],
                "error": True
            }
        }

    groups = info["result"]
    projection_calls = projection_fn.calls
    # Keys are computed after measuring so they don't count as grouping work
    keys = [projection_fn.fn(items[0]) for items in groups]

    return {
        "groups": groups,
        "keys": keys,
        "group_count": len(groups),
        "reversed": reverse,
        "performance": {
            "processing_time_ms": info["execution_time_ms"],
            "memory_usage_mb": info["memory_usage_mb"],
            "input_size": len(source_data),
            "output_size": len(groups),
            "projection_calls": projection_calls
        }
    }
