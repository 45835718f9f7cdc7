"""Shared fixtures for pianoscribe tests."""
import pytest

from pianoscribe.core.history import ProjectHistory
from pianoscribe.core.models import Meter, Note, Part, Project
from pianoscribe.core.settings import Settings


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings.defaults()


@pytest.fixture
def meter():
    # 60 bpm: one beat per second, 96 pulses per second
    return Meter(state="active", bpm=60.0, start_offset=0.0, measure_length=4, subdivision=4)


@pytest.fixture
def project(meter):
    return Project(
        audio_file=b"RIFF",
        meter=meter,
        parts=(
            Part(notes=(Note(0, 96, 60), Note(96, 48, 64))),
            Part(notes=(Note(192, 96, 67),)),
        ),
    )


@pytest.fixture
def history(clock, settings, project):
    h = ProjectHistory(settings=settings, clock=clock)
    h.new_project(project)
    return h
