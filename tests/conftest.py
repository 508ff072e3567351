"""
Pytest configuration file.

This file ensures that the repository root is in the Python path
so that test files can import the grouping modules and the app.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest
from fastapi.testclient import TestClient

from contexts import ForwardContext, SequenceContext
from lazy import LazyRange


def sequence_range(data):
    ctx = SequenceContext(list(data))
    return LazyRange(ctx, ctx.begin(), ctx.end())


def stream_range(data):
    ctx = ForwardContext(iter(list(data)))
    return LazyRange(ctx, ctx.begin(), ctx.end())


@pytest.fixture(params=[sequence_range, stream_range], ids=["bidirectional", "forward"])
def make_range(request):
    """Build a source range over either kind of context"""
    return request.param


@pytest.fixture
def client():
    from app import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clean_metrics():
    from utils import clear_performance_metrics
    clear_performance_metrics()
    yield
    clear_performance_metrics()
