from __future__ import annotations

"""Transposition of scale degrees and chromatic offsets to concrete pitches."""

from dataclasses import dataclass
from typing import List, Sequence, Union

from .keys import get_note_index, pitch_class_name
from .scales import degree_to_semitones


@dataclass(frozen=True)
class Pitch:
    """A resolved note: spelled name, octave and MIDI number."""

    name: str
    octave: int
    midi: int

    @property
    def label(self) -> str:
        return f"{self.name}{self.octave}"

    def to_dict(self) -> dict:
        return {"name": self.name, "octave": self.octave, "midi": self.midi}


Degree = Union[int, Sequence[int]]


def semitones_to_note(semitones: int, root_key: str, base_octave: int = 4, use_flats: bool = False) -> Pitch:
    """Get the pitch lying ``semitones`` above the root of ``root_key``.

    Args:
        semitones: Offset from the root (may be negative or exceed 11).
        root_key: Key name, e.g. "C", "F#", "Bb".
        base_octave: Octave of the root.
        use_flats: Spell accidentals with flats.
    """
    root_index = get_note_index(root_key)
    absolute = root_index + semitones
    return Pitch(
        name=pitch_class_name(absolute % 12, use_flats),
        octave=base_octave + absolute // 12,
        midi=(base_octave + 1) * 12 + absolute,
    )


def transpose_degree(
    degree_or_chord: Degree,
    root_key: str,
    scale_offsets: Sequence[int],
    base_octave: int = 4,
    use_flats: bool = False,
) -> Union[Pitch, List[Pitch]]:
    """Transpose a scale degree, or a chord of degrees, to pitches.

    A single degree gives a Pitch; a list/tuple of degrees gives a list of
    Pitch, so callers must branch on the result shape.
    """
    if isinstance(degree_or_chord, (list, tuple)):
        return [transpose_degree(d, root_key, scale_offsets, base_octave, use_flats) for d in degree_or_chord]  # type: ignore[misc]
    semitones = degree_to_semitones(int(degree_or_chord), scale_offsets)
    return semitones_to_note(semitones, root_key, base_octave, use_flats)


def transpose_chromatic(semitone_offset: int, root_key: str, base_octave: int = 4, use_flats: bool = False) -> Pitch:
    """Transpose a chromatic semitone offset (chord progressions) to a pitch.

    Unlike scale degrees these offsets ignore the scale, so progressions
    sound the same in all 12 keys.
    """
    return semitones_to_note(semitone_offset, root_key, base_octave, use_flats)
