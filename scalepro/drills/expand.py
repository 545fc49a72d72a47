from __future__ import annotations

"""Expand declarative drills into full scale-degree sequences.

Standard hanon: ascending (``repeats`` reps shifting up), then descending
with the inverted pattern (``repeats`` reps shifting down).
Reverse hanon: descending first, then ascending.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import ChordProgressionDrill, ExplicitDrill, HanonDrill, PatternEntry, ScaleSequenceDrill


@dataclass(frozen=True)
class ProgressionEvent:
    """One chord of a progression as chromatic offsets for each hand."""

    bass: Tuple[int, ...]
    voicing: Tuple[int, ...]


def expand_hanon_style(drill: HanonDrill, bars_to_show: Optional[int] = None) -> List[int]:
    """Expand a hanon-style drill into scale degrees.

    Args:
        drill: The hanon drill.
        bars_to_show: Optional limit on the number of bars (reps). The budget
            goes to ascending bars first, the rest to descending bars.
    """
    pattern = list(drill.pattern)
    repeats = drill.repeats
    degrees: List[int] = []

    total_bars = bars_to_show if bars_to_show is not None else repeats * 2
    first_bars = min(repeats, total_bars)
    second_bars = min(repeats, max(0, total_bars - repeats))
    inverted = [-d for d in pattern]

    if drill.reverse:
        start = repeats - 1
        for rep in range(first_bars):
            degrees.extend(d + start - rep for d in pattern)
        lowest = min(pattern)
        for rep in range(second_bars):
            degrees.extend(lowest + rep + off for off in inverted)
    else:
        peak_start = (repeats - 1) + max(pattern)
        for rep in range(first_bars):
            degrees.extend(d + rep for d in pattern)
        for rep in range(second_bars):
            degrees.extend(peak_start - rep + off for off in inverted)

    return degrees


def expand_scale_sequence(drill: ScaleSequenceDrill) -> List[int]:
    """Ascend ``repeats`` times shifting by ``step``, then descend reversed."""
    pattern = list(drill.pattern)
    degrees: List[int] = []
    for i in range(drill.repeats):
        degrees.extend(d + i * drill.step for d in pattern)
    reversed_pattern = pattern[::-1]
    for i in range(drill.repeats - 1, -1, -1):
        degrees.extend(d + i * drill.step for d in reversed_pattern)
    return degrees


def expand_explicit(drill: ExplicitDrill, bars_to_show: Optional[int] = None) -> List[PatternEntry]:
    degrees = list(drill.degrees)
    if bars_to_show:
        degrees = degrees[: drill.pattern_length * bars_to_show]
    return degrees


def expand_chord_progression(drill: ChordProgressionDrill, bars_to_show: Optional[int] = None) -> List[ProgressionEvent]:
    """Repeat the progression, stopping after ``bars_to_show`` chords if given."""
    total = bars_to_show if bars_to_show is not None else len(drill.chords) * drill.repeats
    result: List[ProgressionEvent] = []
    for _ in range(drill.repeats):
        for chord in drill.chords:
            if len(result) >= total:
                return result
            result.append(ProgressionEvent(bass=chord.bass, voicing=chord.voicing))
    return result


def expand_degrees(drill, bars_to_show: Optional[int] = None) -> List[PatternEntry]:
    """Dispatch a melodic drill to its expansion, truncated to ``bars_to_show`` bars."""
    if isinstance(drill, HanonDrill):
        return expand_hanon_style(drill, bars_to_show)
    if isinstance(drill, ScaleSequenceDrill):
        degrees: List[PatternEntry] = list(expand_scale_sequence(drill))
        if bars_to_show:
            degrees = degrees[: drill.pattern_length * bars_to_show]
        return degrees
    if isinstance(drill, ExplicitDrill):
        return expand_explicit(drill, bars_to_show)
    raise TypeError(f"Not a melodic drill: {type(drill).__name__}")
