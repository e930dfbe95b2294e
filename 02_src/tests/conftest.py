"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def store():
    """Create in-memory request store for testing."""
    from browser_monitor.storage import RequestStore

    st = RequestStore(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def fanout():
    """Create an empty fan-out."""
    from browser_monitor.fanout import RequestFanOut

    return RequestFanOut()


@pytest.fixture
def published(fanout):
    """Subscribe a collecting handler; returns the list of delivered requests."""
    calls = []

    async def handler(request):
        calls.append(request)

    fanout.subscribe(handler)
    return calls


@pytest.fixture
def recorded():
    """List filled by the tracker's recorder hook."""
    return []


@pytest.fixture
def tracker(fanout, recorded):
    """Create RequestTracker wired to the fan-out and a recording hook."""
    from browser_monitor.tracker import RequestTracker

    return RequestTracker(fanout, recorder=recorded.append)


@pytest.fixture
def sims():
    """Sim instances created by sim_factory, in creation order."""
    return []


@pytest.fixture
def sim_factory(sims):
    """Event source factory replaying the default SIM scenario."""
    from sim import Sim

    def factory(host, port, handler):
        sim = Sim(host, port, handler)
        sims.append(sim)
        return sim

    return factory


@pytest_asyncio.fixture
async def monitor(sim_factory):
    """Started Monitor with an in-memory store and a SIM event source."""
    from browser_monitor.monitor import Monitor

    mon = Monitor(db_path=":memory:", source_factory=sim_factory, persist=True)
    await mon.start()
    yield mon
    await mon.stop()


@pytest.fixture
def make_request():
    """Factory for fully populated NetworkRequests."""
    from browser_monitor.models import NetworkRequest

    def build(request_id: str = "r1", **overrides):
        fields = {
            "id": request_id,
            "timestamp": datetime.now(timezone.utc),
            "method": "GET",
            "url": f"https://api.example.com/{request_id}",
            "headers": {"Accept": "application/json"},
            "type": "xhr",
            "status": 200,
            "response_headers": {"Content-Type": "application/json"},
            "response_size": 256,
            "encoded_data_length": 256,
            "response_body": None,
            "body": None,
            "error": None,
        }
        fields.update(overrides)
        return NetworkRequest(**fields)

    return build
