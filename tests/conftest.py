"""Shared fixtures."""

import pytest

from tests.fakes import FakeVenue


@pytest.fixture
def venue():
    return FakeVenue()
