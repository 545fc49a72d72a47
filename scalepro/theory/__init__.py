"""Theory layer: keys, scales, transposition and ABC notation.

Everything here is pure and stateless.
"""

from .keys import FLAT_KEYS, NOTE_NAMES, NOTE_NAMES_FLAT, UnknownKeyError  # noqa: F401
from .scales import build_scale_offsets, degree_to_semitones  # noqa: F401
from .transpose import Pitch, semitones_to_note, transpose_chromatic, transpose_degree  # noqa: F401
