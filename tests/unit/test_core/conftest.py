"""Shared fixtures for core unit tests."""

import pytest

from tests.unit.test_core.fakes import FakeClock, FakeMonotonic


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def task():
    return {"id": "T1", "title": "Add retry logic", "description": "Wrap the HTTP client"}
