from __future__ import annotations

"""ABC notation for drills (grand staff, both hands).

All three entry points render through the same staff renderer, so a
one-bar preview is always a prefix of the full exercise.
"""

from typing import List, Optional, Sequence

from ..theory.abc import BEAM_GROUP, abc_document, abc_header, duration_to_abc, event_token, render_staff
from ..theory.keys import normalize_key, uses_flats
from ..theory.scales import Interval
from .models import ChordProgressionDrill, bar_length
from .notes import get_chord_progression_notes, get_drill_notes_for_both_hands, get_drill_pattern

MELODIC_METER = "2/4"
MELODIC_UNIT = 8
CHORD_METER = "4/4"
CHORD_UNIT = 4


def chords_per_bar(duration: int, beats_per_bar: int = 4) -> int:
    """How many chords of a note-length code fill one bar of x/4 time.

    Half and whole notes group by full 4/4 measures (2 and 1 per bar),
    not by ``(4 / duration) * 4`` events.
    """
    return max(1, beats_per_bar * duration // 4)


def _tokens(items: Sequence, use_flats: bool, suffix: str) -> List[str]:
    return [event_token(item, use_flats, suffix) for item in items]


def chord_progression_to_abc(
    drill: ChordProgressionDrill,
    key: str,
    scale_intervals: Optional[Sequence[Interval]] = None,
    octave: int = 4,
    show_full_exercise: bool = False,
    bars_to_show: int = 4,
    title: Optional[str] = None,
) -> str:
    """Chord progression on a grand staff: voicings on RH, bass two octaves lower on LH.

    ``scale_intervals`` is accepted for a uniform signature; progressions are
    transposed chromatically.
    """
    key = normalize_key(key)
    flats = uses_flats(key)
    hands = get_chord_progression_notes(drill, key, octave, None if show_full_exercise else bars_to_show)
    suffix = duration_to_abc(drill.duration, CHORD_UNIT)
    bar_size = chords_per_bar(drill.duration)
    header = abc_header(title or drill.name, CHORD_METER, CHORD_UNIT, key)
    right = render_staff(_tokens(hands["right"], flats, suffix), bar_size)
    left = render_staff(_tokens(hands["left"], flats, suffix), bar_size)
    return abc_document(header, right, left)


def drill_to_abc(
    drill,
    key: str,
    scale_intervals: Sequence[Interval],
    octave: int = 4,
    show_full_exercise: bool = False,
    bars_to_show: int = 4,
) -> str:
    """Convert a drill to ABC with both hands (left hand one octave lower)."""
    if isinstance(drill, ChordProgressionDrill):
        return chord_progression_to_abc(drill, key, scale_intervals, octave, show_full_exercise, bars_to_show)
    key = normalize_key(key)
    flats = uses_flats(key)
    hands = get_drill_notes_for_both_hands(
        drill, key, scale_intervals, octave, None if show_full_exercise else bars_to_show
    )
    suffix = duration_to_abc(drill.duration, MELODIC_UNIT)
    bar_size = bar_length(drill)
    header = abc_header(drill.name, MELODIC_METER, MELODIC_UNIT, key)
    right = render_staff(_tokens(hands["right"], flats, suffix), bar_size, BEAM_GROUP)
    left = render_staff(_tokens(hands["left"], flats, suffix), bar_size, BEAM_GROUP)
    return abc_document(header, right, left)


def pattern_to_abc(drill, key: str, scale_intervals: Sequence[Interval], octave: int = 4) -> str:
    """ABC for just the base pattern (one bar)."""
    title = f"{drill.name} - Pattern"
    if isinstance(drill, ChordProgressionDrill):
        return chord_progression_to_abc(drill, key, octave=octave, bars_to_show=len(drill.chords), title=title)
    key = normalize_key(key)
    flats = uses_flats(key)
    suffix = duration_to_abc(drill.duration, MELODIC_UNIT)
    right_items = get_drill_pattern(drill, key, scale_intervals, octave)
    left_items = get_drill_pattern(drill, key, scale_intervals, octave - 1)
    bar_size = max(1, len(right_items))
    header = abc_header(title, MELODIC_METER, MELODIC_UNIT, key)
    right = render_staff(_tokens(right_items, flats, suffix), bar_size, BEAM_GROUP)
    left = render_staff(_tokens(left_items, flats, suffix), bar_size, BEAM_GROUP)
    return abc_document(header, right, left)
