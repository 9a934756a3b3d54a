import typing as t
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def fixed_clock() -> t.Iterator[MagicMock]:
    """Pin the rate limiter clock to the middle of a window so limits never reset mid-test."""
    with patch("common.throttling.time") as mock_time:
        mock_time.time.return_value = 1_000_030.0
        yield mock_time
