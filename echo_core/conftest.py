# echo_core/conftest.py
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add repository root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from echo_core.core.clock import ManualClock  # noqa: E402
from echo_core.core.config import Settings  # noqa: E402
from echo_core.core.metrics import METRICS  # noqa: E402
from echo_core.engine import build_echo_core  # noqa: E402


START = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def settings_obj():
    return Settings()


@pytest.fixture
def core(clock, settings_obj):
    return build_echo_core(settings_obj, clock=clock)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are process-global; start every test from zero."""
    METRICS.reset()
    yield
