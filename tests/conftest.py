from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from moontide.series import SolarSeriesCache  # noqa: E402


@pytest.fixture
def series_cache() -> SolarSeriesCache:
    return SolarSeriesCache()
