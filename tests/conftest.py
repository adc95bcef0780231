from datetime import datetime, timezone

import pytest

from crm_filters.registry import get_capability_matrix


@pytest.fixture
def matrix():
    return get_capability_matrix()


@pytest.fixture
def now():
    # a Wednesday afternoon
    return datetime(2024, 5, 15, 14, 30, tzinfo=timezone.utc)
