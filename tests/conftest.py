"""Pytest configuration and shared fakes for the Psi backend."""

import asyncio

import pytest

from affect_sync.models import AffectParameters, EmotionalState


class GatedBackend:
    """Async fake collaborator whose calls stay pending until released.

    Lets a test decide the order in which outstanding requests complete.
    """

    def __init__(self):
        self.calls = []

    async def __call__(self, *args):
        entry = {"args": args, "gate": asyncio.Event(), "result": None, "error": None}
        self.calls.append(entry)
        await entry["gate"].wait()
        if entry["error"] is not None:
            raise entry["error"]
        return entry["result"]

    def release(self, index, result=None, error=None):
        entry = self.calls[index]
        entry["result"] = result
        entry["error"] = error
        entry["gate"].set()


async def spin(times=5):
    """Give scheduled tasks a few loop iterations to make progress."""
    for _ in range(times):
        await asyncio.sleep(0)


def state_from_parameters(parameters):
    """Deterministic stand-in for the emotion model."""
    return EmotionalState(anger=parameters.arousal, sadness=7.0 - parameters.valence)


@pytest.fixture
def gated():
    return GatedBackend()


@pytest.fixture
def default_parameters():
    return AffectParameters()
