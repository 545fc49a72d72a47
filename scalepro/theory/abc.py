from __future__ import annotations

"""ABC notation primitives shared by every notation entry point.

ABC octave notation: C,, = C1, C, = C2, C = C3, c = C4, c' = C5, c'' = C6.
"""

from typing import Dict, List, Optional, Sequence

ABC_NOTE_NAMES = ["C", "^C", "D", "^D", "E", "F", "^F", "G", "^G", "A", "^A", "B"]
ABC_NOTE_NAMES_FLAT = ["C", "_D", "D", "_E", "E", "F", "_G", "G", "_A", "A", "_B", "B"]

# Note-length code -> ABC length suffix, per default unit length (L:1/8, L:1/4)
DURATION_TABLES: Dict[int, Dict[int, str]] = {
    8: {1: "8", 2: "4", 4: "2", 8: "", 16: "/2", 32: "/4"},
    4: {1: "4", 2: "2", 4: "", 8: "/2", 16: "/4"},
}

BEAM_GROUP = 4


def midi_to_abc(midi: int, use_flats: bool = False) -> str:
    """Convert a MIDI number to an ABC pitch token (accidental, letter, octave marks)."""
    names = ABC_NOTE_NAMES_FLAT if use_flats else ABC_NOTE_NAMES
    name = names[midi % 12]
    octave = midi // 12 - 1
    if octave <= 3:
        return name.upper() + "," * (3 - octave)
    return name.lower() + "'" * (octave - 4)


def duration_to_abc(duration: int, unit: int = 8) -> str:
    """ABC length suffix for a note-length code; unknown codes give the unit length."""
    return DURATION_TABLES[unit].get(duration, "")


def event_token(item, use_flats: bool = False, suffix: str = "") -> str:
    """Render one note or chord to an ABC token.

    ``item`` is anything with a ``midi`` attribute, a chord event with
    ``notes``, or a list of pitches. Chords of two or more notes are
    bracketed: [ceg].
    """
    notes = getattr(item, "notes", None)
    if notes is None and isinstance(item, (list, tuple)):
        notes = item
    if notes is None:
        return midi_to_abc(item.midi, use_flats) + suffix
    pitches = "".join(midi_to_abc(p.midi, use_flats) for p in notes)
    if len(notes) == 1:
        return pitches + suffix
    return f"[{pitches}]{suffix}"


def render_staff(tokens: Sequence[str], bar_size: int, beam_group: Optional[int] = None) -> str:
    """Join tokens into one staff line body closed with ``|]``.

    A bar line goes after every ``bar_size`` tokens. With ``beam_group``
    tokens are written together and split by a space every ``beam_group``
    tokens so they beam; without it every token is space-separated.
    """
    parts: List[str] = []
    last = len(tokens) - 1
    for i, token in enumerate(tokens):
        parts.append(token)
        if i == last:
            break
        count = i + 1
        if count % bar_size == 0:
            parts.append(" | ")
        elif beam_group is None or count % beam_group == 0:
            parts.append(" ")
    return "".join(parts) + "|]"


def abc_header(title: str, meter: str, unit: int, key: str) -> List[str]:
    """Header lines for a two-staff (grand staff) tune."""
    return [
        "X:1",
        f"T:{title}",
        f"M:{meter}",
        f"L:1/{unit}",
        "%%staves {RH LH}",
        'V:RH clef=treble name="R.H."',
        'V:LH clef=bass name="L.H."',
        f"K:{key}",
    ]


def abc_document(header: Sequence[str], right: str, left: str) -> str:
    return "\n".join(list(header) + [f"[V:RH] {right}", f"[V:LH] {left}"])
