from __future__ import annotations

"""Polyphonic piano sampler.

Plays notes from a small set of reference samples: the nearest sample is
pitch-shifted (detune) to the target note and shaped with an ADSR gain
envelope. Voices are tracked per note name so the same note can sound
several times at once and chords can be released note by note.

All methods run on the asyncio event loop; only the audio graph's mixer
runs on the output thread.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..theory.keys import note_name_to_midi
from .graph import MIN_GAIN, AudioGraph, BufferSource, GainNode, InvalidStateError
from .output import NullOutput
from .samples import SAMPLE_NOTES, HttpSampleLoader, SampleBuffer, SampleLoader

logger = logging.getLogger(__name__)

# Extra time after the release ramp before the source is stopped.
STOP_EPSILON = 0.05
QUICK_RELEASE = 0.15


class SamplerInitError(RuntimeError):
    """The audio graph could not be set up; the sampler stays unusable."""


@dataclass
class Envelope:
    """ADSR envelope in seconds; sustain is a level relative to velocity."""

    attack: float = 0.005
    decay: float = 0.15
    sustain: float = 0.7
    release: float = 0.25


@dataclass
class Voice:
    voice_id: str
    note_name: str
    source: BufferSource
    gain: GainNode
    start_time: float


@dataclass
class SequenceStep:
    note: str
    octave: int = 4
    duration: float = 0.5
    delay: float = 0.0


GraphFactory = Callable[[], AudioGraph]


def _default_graph() -> AudioGraph:
    return AudioGraph(output=NullOutput())


class PianoSampler:
    def __init__(
        self,
        loader: Optional[SampleLoader] = None,
        graph_factory: Optional[GraphFactory] = None,
        sample_notes: Sequence[str] = SAMPLE_NOTES,
        envelope: Optional[Envelope] = None,
        volume: float = 0.7,
    ) -> None:
        self.loader = loader or HttpSampleLoader()
        self.graph_factory = graph_factory or _default_graph
        self.sample_notes = list(sample_notes)
        self.envelope = envelope or Envelope()
        self.volume = volume
        self.graph: Optional[AudioGraph] = None
        self.samples: Dict[str, SampleBuffer] = {}
        self.active_voices: Dict[str, List[Voice]] = {}
        self.is_loaded = False
        self.is_loading = False
        self._ready: Optional[asyncio.Future] = None
        # bumped by dispose(); a load that finishes under an older value is dropped
        self._generation = 0

    # Loading
    def _ready_future(self) -> asyncio.Future:
        if self._ready is None:
            self._ready = asyncio.get_running_loop().create_future()
        return self._ready

    async def init(self) -> None:
        """Create the audio graph and load every sample.

        Safe to call repeatedly: once loaded it returns at once, and a call
        made while loading waits for the same load.

        Raises:
            SamplerInitError: The graph could not be created or started, or
                ``dispose`` was called before loading finished.
        """
        if self.is_loaded:
            return
        ready = self._ready_future()
        if self.is_loading:
            await ready
            return

        self.is_loading = True
        generation = self._generation
        try:
            graph, results = await self._load()
        except Exception as exc:
            if generation == self._generation:
                logger.error("Failed to initialize piano sampler: %s", exc)
                self.is_loading = False
                self._ready = None
            ready.set_exception(SamplerInitError(str(exc)))
        else:
            if generation != self._generation:
                logger.info("Piano sampler disposed while loading, dropping samples")
                graph.close()
                ready.set_exception(SamplerInitError("Sampler disposed while loading"))
            else:
                self.graph = graph
                # insertion order follows sample_notes so nearest-sample ties are stable
                for sample in results:
                    if sample is not None:
                        self.samples[sample.name] = sample
                logger.info("Loaded %d of %d piano samples", len(self.samples), len(self.sample_notes))
                self.is_loaded = True
                self.is_loading = False
                ready.set_result(True)
        await ready

    async def _load(self) -> Tuple[AudioGraph, List[Optional[SampleBuffer]]]:
        graph = self.graph_factory()
        try:
            graph.master.gain.value = self.volume
            graph.set_dispatcher(asyncio.get_running_loop().call_soon_threadsafe)
            graph.start()
            try:
                results = await asyncio.gather(*(self._load_sample(n) for n in self.sample_notes))
            finally:
                await self.loader.aclose()
        except Exception:
            graph.close()
            raise
        return graph, list(results)

    async def _load_sample(self, note_name: str) -> Optional[SampleBuffer]:
        try:
            return await self.loader.load(note_name)
        except Exception as exc:
            logger.warning("Failed to load sample for %s: %s", note_name, exc)
            return None

    async def when_loaded(self) -> bool:
        """Wait until the current load attempt finishes.

        Raises:
            SamplerInitError: The load attempt failed.
        """
        if self.is_loaded:
            return True
        return await self._ready_future()

    # Playback
    def find_closest_sample(self, target_midi: int) -> Optional[Tuple[str, int]]:
        """Return (sample_name, semitone_shift) of the nearest loaded sample.

        Ties go to the sample loaded first.
        """
        closest: Optional[Tuple[str, int]] = None
        min_distance = None
        for name, sample in self.samples.items():
            distance = abs(target_midi - sample.midi)
            if min_distance is None or distance < min_distance:
                min_distance = distance
                closest = (name, target_midi - sample.midi)
        return closest

    def play_note(self, note: str, octave: int = 4, velocity: float = 0.8, duration: float = 0.0) -> str:
        """Play a note.

        Args:
            note: Note name without octave ("C", "F#", "Bb").
            octave: Octave number.
            velocity: 0..1.
            duration: Seconds until release; 0 sustains until ``stop_note``.

        Returns:
            A voice id, or "" when nothing could be played.
        """
        if not self.is_loaded or self.graph is None:
            logger.warning("Piano sampler not loaded yet")
            return ""

        note_name = f"{note}{octave}"
        closest = self.find_closest_sample(note_name_to_midi(note_name))
        if closest is None:
            logger.warning("No sample found for %s", note_name)
            return ""
        sample_name, shift = closest
        sample = self.samples[sample_name]

        graph = self.graph
        source = graph.create_buffer_source(sample.data, sample.sample_rate)
        source.detune.value = shift * 100
        gain = graph.create_gain()

        attack, decay, sustain, release = (
            self.envelope.attack, self.envelope.decay, self.envelope.sustain, self.envelope.release
        )
        now = graph.current_time
        peak = max(velocity, MIN_GAIN)
        sustain_level = max(velocity * sustain, MIN_GAIN)
        gain.gain.set_value_at_time(MIN_GAIN, now)
        gain.gain.exponential_ramp_to_value_at_time(peak, now + attack)
        gain.gain.exponential_ramp_to_value_at_time(sustain_level, now + attack + decay)

        voice_id = f"{note_name}-{uuid.uuid4().hex[:12]}"
        voice = Voice(voice_id, note_name, source, gain, now)
        self.active_voices.setdefault(note_name, []).append(voice)
        source.on_ended = lambda: self._forget_voice(note_name, voice_id)

        source.start(now)
        if duration > 0:
            release_start = now + duration
            gain.gain.set_value_at_time(sustain_level, release_start)
            gain.gain.exponential_ramp_to_value_at_time(MIN_GAIN, release_start + release)
            source.stop(release_start + release + STOP_EPSILON)
        graph.connect(source, gain)
        return voice_id

    def _forget_voice(self, note_name: str, voice_id: str) -> None:
        voices = self.active_voices.get(note_name)
        if not voices:
            return
        self.active_voices[note_name] = [v for v in voices if v.voice_id != voice_id]

    def _release(self, voice: Voice, now: float, release_time: float) -> None:
        param = voice.gain.gain
        current = max(param.value_at(now), MIN_GAIN)
        param.cancel_scheduled_values(now)
        param.set_value_at_time(current, now)
        param.exponential_ramp_to_value_at_time(MIN_GAIN, now + release_time)
        voice.source.stop(now + release_time + STOP_EPSILON)

    def _release_all(self, voices: Iterable[Voice], now: float, release_time: float) -> None:
        for voice in voices:
            try:
                self._release(voice, now, release_time)
            except InvalidStateError:
                logger.debug("Voice %s already stopped", voice.voice_id)

    def stop_note(self, note: str, octave: int = 4, release_time: Optional[float] = None) -> None:
        """Release every voice of a note.

        The voice list is cleared at once; the fade itself takes
        ``release_time`` (default: the envelope release).
        """
        if self.graph is None:
            return
        note_name = f"{note}{octave}"
        voices = self.active_voices.get(note_name)
        if not voices:
            return
        actual = release_time if release_time is not None else self.envelope.release
        self._release_all(voices, self.graph.current_time, actual)
        self.active_voices[note_name] = []

    def play_chord(self, notes: Iterable[Tuple[str, int]], velocity: float = 0.7, duration: float = 1.0) -> List[str]:
        """Play (note, octave) pairs at the same graph time."""
        return [self.play_note(note, octave, velocity, duration) for note, octave in notes]

    async def play_sequence(self, sequence: Iterable[SequenceStep], velocity: float = 0.8) -> None:
        """Play steps one after another, sleeping through each delay and duration."""
        for step in sequence:
            if step.delay > 0:
                await asyncio.sleep(step.delay)
            self.play_note(step.note, step.octave, velocity, step.duration)
            await asyncio.sleep(step.duration)

    def set_volume(self, volume: float) -> None:
        self.volume = max(0.0, min(1.0, volume))
        if self.graph is not None:
            self.graph.master.gain.value = self.volume

    def stop_all(self) -> None:
        """Quickly fade out every voice and forget them all."""
        if self.graph is None:
            return
        now = self.graph.current_time
        quick = min(self.envelope.release, QUICK_RELEASE)
        for voices in self.active_voices.values():
            self._release_all(voices, now, quick)
        self.active_voices.clear()

    def _teardown_graph(self) -> None:
        if self.graph is not None:
            try:
                self.graph.close()
            finally:
                self.graph = None

    def dispose(self) -> None:
        """Stop everything and release the graph and samples. Safe to call twice."""
        self.stop_all()
        self._teardown_graph()
        self.samples.clear()
        self.is_loaded = False
        self.is_loading = False
        self._ready = None
        self._generation += 1
