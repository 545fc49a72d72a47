from __future__ import annotations

"""Drill library loader.

Loads the YAML drill files under resources/drills, validates every record
into a drill model and offers lookup by id and category.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from .models import Drill, parse_drill

DRILLS_DIR = Path(__file__).resolve().parents[1] / "resources" / "drills"

LIBRARY_FILES = ("basic_exercises.yml", "chord_progressions.yml", "arpeggios.yml")


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: str


CATEGORIES: List[Category] = [
    Category("basic-exercises", "Basic Exercises", "Finger independence and strength (Hanon, etc.)"),
    Category("chord-progressions", "Chord Progressions", "Common chord progressions in all keys"),
    Category("arpeggios", "Arpeggios", "Broken chord patterns and arpeggio exercises"),
]


def _load_file(path: Path) -> List[Drill]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    category = data.get("category")
    drills: List[Drill] = []
    for raw in data.get("drills") or []:
        record = dict(raw)
        if category and "category" not in record:
            record["category"] = category
        drills.append(parse_drill(record))
    return drills


@lru_cache(maxsize=4)
def load_drills(directory: Optional[str] = None) -> Tuple[Drill, ...]:
    """Load and validate every drill in the library, in file order.

    Raises:
        pydantic.ValidationError: A record does not match its drill type.
        ValueError: Two drills share an id.
    """
    base = Path(directory) if directory else DRILLS_DIR
    drills: List[Drill] = []
    seen: Dict[str, str] = {}
    for filename in LIBRARY_FILES:
        path = base / filename
        if not path.exists():
            continue
        for drill in _load_file(path):
            if drill.id in seen:
                raise ValueError(f"Duplicate drill id {drill.id!r} in {filename} and {seen[drill.id]}")
            seen[drill.id] = filename
            drills.append(drill)
    return tuple(drills)


def get_drills_by_category(category: Optional[str] = None, directory: Optional[str] = None) -> List[Drill]:
    drills = load_drills(directory)
    if category:
        return [d for d in drills if d.category == category]
    return list(drills)


def get_drill(drill_id: str, directory: Optional[str] = None) -> Drill:
    for drill in load_drills(directory):
        if drill.id == drill_id:
            return drill
    raise KeyError(f"Unknown drill id: {drill_id}")
