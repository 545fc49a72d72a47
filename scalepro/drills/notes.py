from __future__ import annotations

"""Resolve drills to concrete note and chord events in a key and scale."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from ..theory.keys import normalize_key, uses_flats
from ..theory.scales import Interval, build_scale_offsets
from ..theory.transpose import Pitch, transpose_chromatic, transpose_degree
from .expand import expand_chord_progression, expand_degrees
from .models import ChordProgressionDrill


@dataclass(frozen=True)
class NoteEvent:
    name: str
    octave: int
    midi: int
    duration: int

    @property
    def label(self) -> str:
        return f"{self.name}{self.octave}"

    def to_dict(self) -> dict:
        return {"name": self.name, "octave": self.octave, "midi": self.midi, "duration": self.duration}


@dataclass(frozen=True)
class ChordEvent:
    notes: List[Pitch] = field(default_factory=list)
    duration: int = 4

    def to_dict(self) -> dict:
        return {"notes": [p.to_dict() for p in self.notes], "duration": self.duration}


@dataclass(frozen=True)
class ChordSymbol:
    """A progression chord's voicing with its display name and numeral."""

    notes: List[Pitch]
    chord_name: str
    numeral: Optional[str] = None


Event = Union[NoteEvent, ChordEvent]


def get_chord_progression_notes(
    drill: ChordProgressionDrill,
    key: str,
    octave: int = 4,
    bars_to_show: Optional[int] = None,
) -> Dict[str, List[ChordEvent]]:
    """Both hands of a chord progression, transposed chromatically.

    Right hand plays the voicing at ``octave``; left hand plays the bass two
    octaves lower.
    """
    key = normalize_key(key)
    flats = uses_flats(key)
    right: List[ChordEvent] = []
    left: List[ChordEvent] = []
    for event in expand_chord_progression(drill, bars_to_show):
        right.append(ChordEvent([transpose_chromatic(s, key, octave, flats) for s in event.voicing], drill.duration))
        left.append(ChordEvent([transpose_chromatic(s, key, octave - 2, flats) for s in event.bass], drill.duration))
    return {"right": right, "left": left}


def get_drill_notes(
    drill,
    key: str,
    scale_intervals: Sequence[Interval],
    octave: int = 4,
    hand: str = "right",
    bars_to_show: Optional[int] = None,
    strict: bool = False,
) -> List[Event]:
    """Get the notes for a drill transposed to a key and scale.

    Args:
        drill: Any drill model.
        key: Target key, e.g. "C", "F#".
        scale_intervals: e.g. ["W", "W", "H", "W", "W", "W", "H"].
        octave: Right-hand base octave; the left hand plays one octave lower.
        hand: "right" or "left".
        bars_to_show: Optional preview length in bars.
        strict: Reject unknown interval tokens instead of using 0.

    Returns:
        NoteEvent per degree, ChordEvent for chord entries and for chord
        progressions.
    """
    if isinstance(drill, ChordProgressionDrill):
        hands = get_chord_progression_notes(drill, key, octave, bars_to_show)
        return list(hands["left" if hand == "left" else "right"])

    key = normalize_key(key)
    flats = uses_flats(key)
    offsets = build_scale_offsets(scale_intervals, strict=strict)
    base_octave = octave - 1 if hand == "left" else octave

    events: List[Event] = []
    for degree in expand_degrees(drill, bars_to_show):
        resolved = transpose_degree(degree, key, offsets, base_octave, flats)
        if isinstance(resolved, list):
            events.append(ChordEvent(resolved, drill.duration))
        else:
            events.append(NoteEvent(resolved.name, resolved.octave, resolved.midi, drill.duration))
    return events


def get_drill_notes_for_both_hands(
    drill,
    key: str,
    scale_intervals: Sequence[Interval],
    octave: int = 4,
    bars_to_show: Optional[int] = None,
    strict: bool = False,
) -> Dict[str, List[Event]]:
    if isinstance(drill, ChordProgressionDrill):
        return dict(get_chord_progression_notes(drill, key, octave, bars_to_show))
    return {
        "right": get_drill_notes(drill, key, scale_intervals, octave, "right", bars_to_show, strict),
        "left": get_drill_notes(drill, key, scale_intervals, octave, "left", bars_to_show, strict),
    }


def get_drill_pattern(drill, key: str, scale_intervals: Sequence[Interval], octave: int = 4) -> list:
    """Just the base pattern transposed, without expanding sequences."""
    key = normalize_key(key)
    flats = uses_flats(key)
    if isinstance(drill, ChordProgressionDrill):
        symbols = []
        for chord in drill.chords:
            notes = [transpose_chromatic(s, key, octave, flats) for s in chord.voicing]
            root = transpose_chromatic(chord.bass[0], key, octave, flats)
            name = root.name + ("m" if chord.quality == "minor" else "")
            symbols.append(ChordSymbol(notes, name, chord.numeral))
        return symbols
    offsets = build_scale_offsets(scale_intervals)
    pattern = getattr(drill, "pattern", None) or drill.notes
    return [transpose_degree(d, key, offsets, octave, flats) for d in pattern]


def get_drill_bars(drill, key: str, scale_intervals: Sequence[Interval], octave: int = 4) -> List[List[Event]]:
    """The full exercise split into bars of one pattern length each."""
    notes = get_drill_notes(drill, key, scale_intervals, octave)
    if isinstance(drill, ChordProgressionDrill):
        size = 1
    else:
        size = len(getattr(drill, "pattern", None) or drill.notes)
    return [notes[i:i + size] for i in range(0, len(notes), size)]


def _label(item, with_octave: bool) -> str:
    if isinstance(item, ChordEvent):
        inner = " ".join(_label(p, with_octave) for p in item.notes)
        return f"[{inner}]"
    if isinstance(item, list):
        inner = " ".join(_label(p, with_octave) for p in item)
        return f"[{inner}]"
    return f"{item.name}{item.octave}" if with_octave else item.name


def format_notes_as_string(notes: Sequence) -> str:
    """Readable 'C4 E4 [C4 E4 G4]' string."""
    return " ".join(_label(n, True) for n in notes)


def format_note_names(notes: Sequence) -> str:
    """Like format_notes_as_string but without octave numbers."""
    return " ".join(_label(n, False) for n in notes)
