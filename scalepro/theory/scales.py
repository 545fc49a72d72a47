from __future__ import annotations

"""Scale patterns and helpers for 12-TET.

Scales are written as interval steps ("W", "H", "W+H" or a raw semitone
count). Degrees are 0-based and may run past the scale length or below
zero; they wrap into the neighbouring octaves.
"""

import logging
from typing import Dict, List, Sequence, Union

logger = logging.getLogger(__name__)

Interval = Union[str, int]

_INTERVAL_SEMITONES: Dict[str, int] = {"H": 1, "W": 2, "W+H": 3}

SCALES: Dict[str, List[str]] = {
    "major": ["W", "W", "H", "W", "W", "W", "H"],
    "natural_minor": ["W", "H", "W", "W", "H", "W", "W"],
    "harmonic_minor": ["W", "H", "W", "W", "H", "W+H", "H"],
    "melodic_minor": ["W", "H", "W", "W", "W", "W", "H"],
    "dorian": ["W", "H", "W", "W", "W", "H", "W"],
    "phrygian": ["H", "W", "W", "W", "H", "W", "W"],
    "lydian": ["W", "W", "W", "H", "W", "W", "H"],
    "mixolydian": ["W", "W", "H", "W", "W", "H", "W"],
    "locrian": ["H", "W", "W", "H", "W", "W", "W"],
    "major_pentatonic": ["W", "W", "W+H", "W", "W+H"],
    "minor_pentatonic": ["W+H", "W", "W", "W+H", "W"],
    "blues": ["W+H", "W", "H", "H", "W+H", "W"],
}

_ALIASES: Dict[str, str] = {
    "maj": "major",
    "ionian": "major",
    "minor": "natural_minor",
    "min": "natural_minor",
    "nat_minor": "natural_minor",
    "aeolian": "natural_minor",
    "harmonic": "harmonic_minor",
    "melodic": "melodic_minor",
    "pentatonic": "major_pentatonic",
}


class IntervalError(ValueError):
    """Raised for an unreadable interval token in strict mode."""


def normalize_scale_name(value: str | None) -> str:
    if not value:
        return "major"
    t = value.strip().lower().replace("-", "_").replace(" ", "_")
    return _ALIASES.get(t, t)


def get_scale_intervals(name: str | None) -> List[str]:
    """Return the interval steps of a named scale or mode.

    Raises:
        KeyError: The name (after alias resolution) is not a known scale.
    """
    key = normalize_scale_name(name)
    if key not in SCALES:
        raise KeyError(f"Unknown scale: {name}")
    return list(SCALES[key])


def interval_to_semitones(interval: Interval, strict: bool = False) -> int:
    """Convert interval notation (W, H, W+H or an integer) to semitones.

    Unknown tokens resolve to 0 semitones unless ``strict`` is set.
    """
    if isinstance(interval, bool):
        interval = str(interval)
    if isinstance(interval, int):
        return interval
    token = str(interval).strip().upper()
    if token in _INTERVAL_SEMITONES:
        return _INTERVAL_SEMITONES[token]
    try:
        return int(token)
    except ValueError:
        if strict:
            raise IntervalError(f"Unknown interval token: {interval!r}") from None
        logger.warning("Unknown interval token %r, using 0 semitones", interval)
        return 0


def build_scale_offsets(intervals: Sequence[Interval], strict: bool = False) -> List[int]:
    """Build semitone offsets from the root for each scale degree.

    Args:
        intervals: Steps like ["W", "W", "H", "W", "W", "W", "H"].
        strict: Raise IntervalError on unknown tokens instead of using 0.

    Returns:
        One offset per step, e.g. [0, 2, 4, 5, 7, 9, 11] for major. The
        last step only closes the octave.
    """
    offsets = [0]
    current = 0
    for interval in list(intervals)[:-1]:
        current += interval_to_semitones(interval, strict=strict)
        offsets.append(current)
    return offsets


def degree_to_semitones(degree: int, scale_offsets: Sequence[int]) -> int:
    """Return the semitone offset from the root for a 0-based degree.

    Degrees >= len(scale_offsets) climb into higher octaves; negative
    degrees go below the root.
    """
    scale_length = len(scale_offsets)
    octave_offset = (degree // scale_length) * 12
    degree_in_octave = ((degree % scale_length) + scale_length) % scale_length
    return scale_offsets[degree_in_octave] + octave_offset
