"""Shared pytest fixtures for the reckon test suite."""

from __future__ import annotations

import pytest

from reckon.parser import CONVENTIONAL
from reckon.session import Session


@pytest.fixture
def session():
    return Session()


@pytest.fixture
def conventional_session():
    return Session(powers=CONVENTIONAL)
