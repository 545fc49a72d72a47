from __future__ import annotations

"""Step drill events through the piano sampler at a tempo."""

import asyncio
import logging
from typing import List, Optional, Sequence

from ..app.explain import trace
from .sampler import PianoSampler

logger = logging.getLogger(__name__)


def duration_to_seconds(code: int, bpm: float) -> float:
    """Seconds for a note-length code (4 = quarter) at ``bpm`` quarter notes per minute."""
    if code <= 0 or bpm <= 0:
        raise ValueError("duration code and bpm must be positive")
    return (4.0 / code) * 60.0 / bpm


def _pitches(event) -> List:
    notes = getattr(event, "notes", None)
    return list(notes) if notes is not None else [event]


class DrillPlayer:
    """Play both hands of a drill together, one event per step."""

    def __init__(self, sampler: PianoSampler) -> None:
        self.sampler = sampler
        self._stopped = asyncio.Event()

    def stop(self) -> None:
        self._stopped.set()
        self.sampler.stop_all()

    def _sound(self, event, seconds: float, velocity: float) -> None:
        for p in _pitches(event):
            self.sampler.play_note(p.name, p.octave, velocity, seconds)

    async def play(
        self,
        right: Sequence,
        left: Optional[Sequence] = None,
        bpm: float = 90,
        velocity: float = 0.8,
    ) -> int:
        """Play the events and return how many steps were sounded."""
        left = left or []
        self._stopped.clear()
        steps = max(len(right), len(left))
        played = 0
        for i in range(steps):
            if self._stopped.is_set():
                logger.info("Playback stopped after %d steps", played)
                break
            lengths = []
            for hand in (right, left):
                if i < len(hand):
                    seconds = duration_to_seconds(hand[i].duration, bpm)
                    self._sound(hand[i], seconds, velocity)
                    lengths.append(seconds)
            trace("step", {"index": i, "seconds": round(max(lengths), 4)})
            played += 1
            await asyncio.sleep(max(lengths))
        return played
