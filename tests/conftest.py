import sys
import os

import pytest

# Ensure repo root on sys.path for imports like `app...`
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.core.config import get_settings  # noqa: E402
from app.db.record_store import SupabaseRecordStore  # noqa: E402
from tests.fakes import FakeClient  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def make_store():
    """Build a record store over a fake client seeded with ``data``."""

    def _make(data=None, latency: float = 0.0):
        client = FakeClient(data, latency=latency)
        return client, SupabaseRecordStore(client.factory, timeout=1.0)

    return _make
