from __future__ import annotations

"""Pydantic models for drill records.

Drills are immutable reference data loaded from the YAML library. Pattern
values are 0-based scale degrees (a nested list is a chord); chord
progressions store chromatic semitone offsets instead.
"""

from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

# Note-length codes: 1=whole, 2=half, 4=quarter, 8=eighth, 16=sixteenth, 32=thirty-second
NOTE_LENGTHS = (1, 2, 4, 8, 16, 32)

DRILL_TYPES = ("explicit", "scale-sequence", "hanon-style", "chord-progression")

PatternEntry = Union[int, Annotated[Tuple[int, ...], Field(min_length=1)]]


class _DrillBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = "basic-exercises"
    description: str = ""
    duration: int = 8

    @field_validator("duration")
    @classmethod
    def _known_note_length(cls, v: int) -> int:
        if v not in NOTE_LENGTHS:
            raise ValueError(f"duration must be one of {NOTE_LENGTHS}")
        return v


class ExplicitDrill(_DrillBase):
    """The notes array is the whole exercise, played verbatim."""

    type: Literal["explicit"]
    pattern: Optional[Tuple[PatternEntry, ...]] = None
    notes: Optional[Tuple[PatternEntry, ...]] = None

    @model_validator(mode="after")
    def _has_notes(self) -> "ExplicitDrill":
        if not (self.notes or self.pattern):
            raise ValueError("explicit drill needs 'notes' or 'pattern'")
        return self

    @property
    def degrees(self) -> Tuple[PatternEntry, ...]:
        return self.notes or self.pattern or ()

    @property
    def pattern_length(self) -> int:
        return len(self.pattern or self.notes or ())


class ScaleSequenceDrill(_DrillBase):
    """Pattern climbs ``repeats`` times by ``step`` degrees, then comes back down reversed."""

    type: Literal["scale-sequence"]
    pattern: Tuple[int, ...] = Field(min_length=1)
    step: int = 1
    repeats: int = Field(ge=1)

    @property
    def pattern_length(self) -> int:
        return len(self.pattern)


class HanonDrill(_DrillBase):
    """Hanon-style: pattern shifts +1 per rep, then the inverted pattern shifts -1."""

    type: Literal["hanon-style"]
    pattern: Tuple[int, ...] = Field(min_length=1)
    repeats: int = Field(default=8, ge=1)
    reverse: bool = False

    @property
    def pattern_length(self) -> int:
        return len(self.pattern)


class ProgressionChord(BaseModel):
    model_config = ConfigDict(frozen=True)

    bass: Tuple[int, ...] = Field(min_length=1)
    voicing: Tuple[int, ...] = Field(min_length=1)
    numeral: Optional[str] = None
    quality: Optional[str] = None


class ChordProgressionDrill(_DrillBase):
    type: Literal["chord-progression"]
    category: str = "chord-progressions"
    duration: int = 4
    chords: Tuple[ProgressionChord, ...] = Field(min_length=1)
    repeats: int = Field(default=1, ge=1)


Drill = Annotated[
    Union[ExplicitDrill, ScaleSequenceDrill, HanonDrill, ChordProgressionDrill],
    Field(discriminator="type"),
]

MelodicDrill = Union[ExplicitDrill, ScaleSequenceDrill, HanonDrill]

_DRILL_ADAPTER: TypeAdapter = TypeAdapter(Drill)


def parse_drill(data: dict) -> Drill:
    """Validate a raw mapping (e.g. from YAML) into the matching drill model."""
    return _DRILL_ADAPTER.validate_python(data)


def bar_length(drill: MelodicDrill) -> int:
    """Notes per notated bar: the pattern length, or 8 without a pattern."""
    pattern = getattr(drill, "pattern", None)
    return len(pattern) if pattern else 8
