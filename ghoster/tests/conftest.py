"""pytest configuration file."""

import pytest, os, logging

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from ..engine.cues import CuePlayer
from ..engine.narrator import VirtualNarrator
from ..engine.timebase import ManualTimebase
from ..session.events import WorkoutEventEmitter, WorkoutEventType


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (may take several seconds)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture(autouse=True, scope="session")
def _silence_logs():
    logging.getLogger("ghoster.session.events").setLevel(logging.ERROR)
    logging.getLogger("asyncio").setLevel(logging.ERROR)
    yield


class EventRecorder:
    """Collects every event emitted on a bus."""

    def __init__(self, emitter: WorkoutEventEmitter):
        self.events = []
        emitter.subscribe_all(self.events.append)

    def of(self, event_type: WorkoutEventType):
        return [e for e in self.events if e.event_type is event_type]

    def times(self, event_type: WorkoutEventType):
        return [round(e.timestamp, 6) for e in self.of(event_type)]

    def texts(self):
        """Non-empty DISPLAY texts in order."""
        return [e.data["text"] for e in self.of(WorkoutEventType.DISPLAY) if e.data["text"]]

    def clear(self):
        self.events.clear()


@pytest.fixture
def clock():
    return ManualTimebase()


@pytest.fixture
def narrator(clock):
    return VirtualNarrator(clock)


@pytest.fixture
def cues():
    return CuePlayer()


@pytest.fixture
def emitter(clock):
    return WorkoutEventEmitter(clock=clock.now)


@pytest.fixture
def recorder(emitter):
    return EventRecorder(emitter)
