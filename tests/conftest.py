import pytest

from market_data import Dataset


@pytest.fixture
def payload():
    """Small market_chart response with a gap in every series"""
    return {
        'prices': [[1000, 10.0], [2000, None], [3000, 30.0]],
        'market_caps': [[1000, 1.0e9], [2000, 2.5e9], [3000, None]],
        'total_volumes': [[1000, None], [3000, 5.0e6]],
    }


@pytest.fixture
def dataset(payload):
    return Dataset.from_payload(payload)
