from __future__ import annotations

"""Key and pitch utilities for mapping to MIDI.

Includes pitch-class names in sharp and flat spelling, the flat-key
whitelist that decides the spelling of a key, and note-name parsing.
"""

import re
from typing import List, Tuple


NOTE_NAMES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
NOTE_NAMES_FLAT: List[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

# Keys that conventionally use flats; every other key is spelled with sharps.
FLAT_KEYS: List[str] = ["F", "Bb", "Eb", "Ab", "Db", "Gb"]

_NOTE_RE = re.compile(r"^([A-Ga-g][#b]?)(-?\d+)$")


class UnknownKeyError(ValueError):
    """Raised for a key or note name outside the 12 supported spellings."""


def normalize_key(name: str) -> str:
    """Normalize a key name: first letter upper-cased, the rest lower-cased.

    Args:
        name: Key like "c", "F#", "bb", "EB".

    Returns:
        The canonical spelling ("C", "F#", "Bb", "Eb").

    Raises:
        UnknownKeyError: The name is not one of the 12 sharp/flat spellings.
    """
    if not name:
        raise UnknownKeyError("Empty key name")
    norm = name[0].upper() + name[1:].lower()
    if norm not in NOTE_NAMES and norm not in NOTE_NAMES_FLAT:
        raise UnknownKeyError(f"Unknown key: {name}")
    return norm


def get_note_index(name: str) -> int:
    """Return the pitch class (0..11) of a note name in either spelling."""
    norm = normalize_key(name)
    if norm in NOTE_NAMES:
        return NOTE_NAMES.index(norm)
    return NOTE_NAMES_FLAT.index(norm)


def uses_flats(key: str) -> bool:
    return normalize_key(key) in FLAT_KEYS


def pitch_class_name(pc: int, use_flats: bool = False) -> str:
    names = NOTE_NAMES_FLAT if use_flats else NOTE_NAMES
    return names[pc % 12]


def parse_note_name(note: str) -> Tuple[str, int]:
    """Split a note string like 'C4', 'F#3', 'Bb5' into (name, octave)."""
    match = _NOTE_RE.match(note or "")
    if match is None:
        raise UnknownKeyError(f"Invalid note name: {note}")
    return normalize_key(match.group(1)), int(match.group(2))


def note_name_to_midi(note: str) -> int:
    """Convert a note string to a MIDI number. Uses C4 = 60."""
    name, octave = parse_note_name(note)
    return (octave + 1) * 12 + get_note_index(name)


def midi_to_note_name(midi: int, use_flats: bool = False) -> str:
    return f"{pitch_class_name(midi % 12, use_flats)}{midi // 12 - 1}"
