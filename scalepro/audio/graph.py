from __future__ import annotations

"""Minimal audio graph: automated gain params, buffer sources and a numpy mixer.

The graph keeps its own sample clock. An output backend pulls blocks with
``render(frames)`` (usually from the device thread); everything else is
called from the event loop. Automation follows the shape of a browser audio
param: set points and exponential ramps between them.
"""

import bisect
import logging
import threading
from typing import Callable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Exponential ramps cannot reach zero; this is "silent".
MIN_GAIN = 0.001


class InvalidStateError(RuntimeError):
    """Operation not allowed in the current state of an audio node."""


class AudioParam:
    """A value with a timeline of automation events.

    Events are ("set", value, time) or ("exp", value, time); an exponential
    ramp runs from the previous event's value and time to its own.
    """

    def __init__(self, value: float) -> None:
        self._default = float(value)
        self._events: List[Tuple[float, int, str, float]] = []
        self._seq = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        return self._default

    @value.setter
    def value(self, v: float) -> None:
        with self._lock:
            self._default = float(v)
            self._events = []

    def _insert(self, kind: str, value: float, time: float) -> None:
        with self._lock:
            self._seq += 1
            events = list(self._events)
            bisect.insort(events, (float(time), self._seq, kind, float(value)))
            self._events = events

    def set_value_at_time(self, value: float, time: float) -> "AudioParam":
        self._insert("set", value, time)
        return self

    def exponential_ramp_to_value_at_time(self, value: float, time: float) -> "AudioParam":
        if value <= 0:
            raise ValueError("exponential ramp target must be positive")
        self._insert("exp", value, time)
        return self

    def cancel_scheduled_values(self, time: float) -> "AudioParam":
        """Drop every event at or after ``time``."""
        with self._lock:
            self._events = [e for e in self._events if e[0] < time]
        return self

    def values(self, times: np.ndarray) -> np.ndarray:
        """Evaluate the automation at each time in ``times`` (seconds)."""
        out = np.full(times.shape, self._default, dtype=np.float64)
        prev_v = self._default
        prev_t = float("-inf")
        for time, _, kind, value in self._events:
            if kind == "exp" and prev_v > 0 and time > prev_t > float("-inf"):
                seg = (times >= prev_t) & (times < time)
                if seg.any():
                    frac = (times[seg] - prev_t) / (time - prev_t)
                    out[seg] = prev_v * (value / prev_v) ** frac
            out[times >= time] = value
            prev_v, prev_t = value, time
        return out

    def value_at(self, time: float) -> float:
        return float(self.values(np.array([time], dtype=np.float64))[0])


class GainNode:
    def __init__(self, value: float = 1.0) -> None:
        self.gain = AudioParam(value)


class BufferSource:
    """One-shot playback of a mono buffer with detune (100 cents per semitone)."""

    def __init__(self, data: np.ndarray, sample_rate: int) -> None:
        self.data = np.asarray(data, dtype=np.float32)
        self.sample_rate = int(sample_rate)
        self.detune = AudioParam(0.0)
        self.on_ended: Optional[Callable[[], None]] = None
        self.start_time: Optional[float] = None
        self.stop_time: Optional[float] = None
        self.ended = False

    def start(self, when: float = 0.0) -> None:
        if self.start_time is not None:
            raise InvalidStateError("source already started")
        self.start_time = float(when)

    def stop(self, when: float = 0.0) -> None:
        if self.start_time is None:
            raise InvalidStateError("source not started")
        if self.ended:
            raise InvalidStateError("source already ended")
        self.stop_time = float(when)

    @property
    def playback_rate(self) -> float:
        return 2.0 ** (self.detune.value / 1200.0)

    def render(self, times: np.ndarray) -> Optional[np.ndarray]:
        """Samples for the given output times, or None when silent in this block."""
        if self.start_time is None or self.ended:
            return None
        n = len(self.data)
        elapsed = times - self.start_time
        pos = elapsed * self.sample_rate * self.playback_rate
        active = (elapsed >= 0) & (pos < n - 1)
        if self.stop_time is not None:
            active &= times < self.stop_time
        if pos[-1] >= n - 1 or (self.stop_time is not None and times[-1] >= self.stop_time):
            self.ended = True
        if not active.any():
            return None
        out = np.zeros(times.shape, dtype=np.float64)
        out[active] = np.interp(pos[active], np.arange(n), self.data)
        return out


class AudioGraph:
    """Sources -> per-voice gain -> master gain -> output."""

    def __init__(self, sample_rate: int = 44100, volume: float = 0.7, output=None) -> None:
        self.sample_rate = int(sample_rate)
        self.master = GainNode(volume)
        self.output = output
        self._connections: List[Tuple[BufferSource, GainNode]] = []
        self._frame = 0
        self._lock = threading.Lock()
        self._dispatch: Callable[[Callable[[], None]], object] = lambda cb: cb()
        self.closed = False

    @property
    def current_time(self) -> float:
        return self._frame / self.sample_rate

    def set_dispatcher(self, dispatch: Callable[[Callable[[], None]], object]) -> None:
        """Route end-of-source callbacks, e.g. through ``loop.call_soon_threadsafe``."""
        self._dispatch = dispatch

    def create_buffer_source(self, data: np.ndarray, sample_rate: int) -> BufferSource:
        return BufferSource(data, sample_rate)

    def create_gain(self, value: float = 1.0) -> GainNode:
        return GainNode(value)

    def connect(self, source: BufferSource, gain: GainNode) -> None:
        with self._lock:
            self._connections.append((source, gain))

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def render(self, frames: int) -> np.ndarray:
        """Mix the next ``frames`` samples and advance the clock."""
        times = (self._frame + np.arange(frames)) / self.sample_rate
        mix = np.zeros(frames, dtype=np.float64)
        with self._lock:
            connections = list(self._connections)
        for source, gain in connections:
            signal = source.render(times)
            if signal is not None:
                mix += signal * gain.gain.values(times)
        mix *= self.master.gain.values(times)

        finished = [c for c in connections if c[0].ended]
        if finished:
            with self._lock:
                self._connections = [c for c in self._connections if not c[0].ended]
            for source, _ in finished:
                if source.on_ended is not None:
                    self._dispatch(source.on_ended)
        self._frame += frames
        return np.clip(mix, -1.0, 1.0).astype(np.float32)

    def start(self) -> None:
        if self.output is not None:
            self.output.start(self.render)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.output is not None:
            self.output.close()
        with self._lock:
            self._connections = []
