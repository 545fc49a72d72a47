from __future__ import annotations

"""Randomness helpers for key selection and seeding."""

import os
import random
from typing import List

import numpy as np

from ..theory.keys import NOTE_NAMES_FLAT


_KEYS: List[str] = list(NOTE_NAMES_FLAT)


def seed_if_needed() -> None:
    """Seed RNGs if the SEED env var is set."""
    seed = os.environ.get("SEED")
    if seed is None:
        return
    try:
        s = int(seed)
    except ValueError:
        return
    random.seed(s)
    np.random.seed(s)


def choose_random_key(rng: random.Random | None = None) -> str:
    """Choose one of the twelve keys."""
    return (rng or random).choice(_KEYS)
