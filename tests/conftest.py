"""
Shared fixtures for the test suite.

Audio tests never touch a device or the network: samples come from an
in-memory loader and the graph renders into a NullOutput whose clock only
moves when a test advances it.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

import numpy as np
import pytest

from scalepro.audio.graph import AudioGraph
from scalepro.audio.output import NullOutput
from scalepro.audio.sampler import PianoSampler
from scalepro.audio.samples import SampleBuffer
from scalepro.drills.models import parse_drill
from scalepro.theory.keys import note_name_to_midi
from scalepro.theory.scales import SCALES

FAKE_RATE = 8000
"""Sample rate of the synthetic samples (one second each)."""


class FakeLoader:
    """Deterministic sample loader: sine tones, optional failures and delays."""

    def __init__(self, fail: Iterable[str] = (), delays: Optional[Dict[str, float]] = None) -> None:
        self.fail = set(fail)
        self.delays = delays or {}
        self.calls: List[str] = []
        self.closed = 0

    async def load(self, note_name: str) -> SampleBuffer:
        self.calls.append(note_name)
        await asyncio.sleep(self.delays.get(note_name, 0))
        if note_name in self.fail:
            raise RuntimeError(f"404 for {note_name}")
        midi = note_name_to_midi(note_name)
        t = np.arange(FAKE_RATE) / FAKE_RATE
        freq = 440.0 * 2 ** ((midi - 69) / 12)
        data = (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)
        return SampleBuffer(note_name, midi, data, FAKE_RATE)

    async def aclose(self) -> None:
        self.closed += 1


def null_graph() -> AudioGraph:
    return AudioGraph(sample_rate=FAKE_RATE, output=NullOutput(sample_rate=FAKE_RATE))


@pytest.fixture
def make_sampler():
    """Build a PianoSampler over FakeLoader and a NullOutput graph."""

    def _make(sample_notes=("C4", "A4"), loader: Optional[FakeLoader] = None, **kwargs) -> PianoSampler:
        return PianoSampler(
            loader=loader or FakeLoader(),
            graph_factory=kwargs.pop("graph_factory", null_graph),
            sample_notes=sample_notes,
            **kwargs,
        )

    return _make


@pytest.fixture
def major():
    return list(SCALES["major"])


@pytest.fixture
def hanon_drill():
    return parse_drill(
        {"id": "h", "name": "Hanon Test", "type": "hanon-style", "pattern": [0, 2, 4], "repeats": 8, "duration": 16}
    )
