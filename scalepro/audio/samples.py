from __future__ import annotations

"""Reference piano samples: note list, URLs, loading and decoding.

Samples exist for every third semitone (Salamander Grand Piano, public
domain); notes in between are pitch-shifted from the nearest sample.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

import httpx
import numpy as np
import soundfile as sf

from ..theory.keys import note_name_to_midi

logger = logging.getLogger(__name__)

SAMPLE_BASE_URL = "https://tonejs.github.io/audio/salamander/"

SAMPLE_NOTES = [
    "A0", "C1", "D#1", "F#1", "A1", "C2", "D#2", "F#2", "A2", "C3",
    "D#3", "F#3", "A3", "C4", "D#4", "F#4", "A4", "C5", "D#5", "F#5",
    "A5", "C6", "D#6", "F#6", "A6", "C7", "D#7", "F#7", "A7", "C8",
]


@dataclass(frozen=True)
class SampleBuffer:
    """A decoded mono sample and the note it was recorded at."""

    name: str
    midi: int
    data: np.ndarray
    sample_rate: int


def sample_filename(note_name: str) -> str:
    return f"{note_name.replace('#', 's')}.mp3"


def sample_url(note_name: str, base_url: str = SAMPLE_BASE_URL) -> str:
    """URL of the sample for e.g. 'D#4' -> '<base>Ds4.mp3'."""
    return f"{base_url}{sample_filename(note_name)}"


def decode_sample(data: bytes) -> Tuple[np.ndarray, int]:
    """Decode encoded audio bytes to a mono float32 array.

    Raises:
        RuntimeError: soundfile could not decode the bytes.
    """
    try:
        audio, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except Exception as exc:
        raise RuntimeError(f"Failed to decode sample: {exc}") from exc
    return audio.mean(axis=1).astype(np.float32), int(sample_rate)


class SampleLoader(Protocol):
    async def load(self, note_name: str) -> SampleBuffer: ...

    async def aclose(self) -> None: ...


class HttpSampleLoader:
    """Fetch samples over HTTP with one shared async client."""

    def __init__(self, base_url: str = SAMPLE_BASE_URL, timeout_s: float = 10.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_s, follow_redirects=True)
        return self._client

    async def load(self, note_name: str) -> SampleBuffer:
        response = await self._get_client().get(sample_url(note_name, self.base_url))
        response.raise_for_status()
        data, sample_rate = await asyncio.to_thread(decode_sample, response.content)
        return SampleBuffer(note_name, note_name_to_midi(note_name), data, sample_rate)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class DirectorySampleLoader:
    """Read samples from a local directory laid out like the sample server."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    async def load(self, note_name: str) -> SampleBuffer:
        path = self.directory / sample_filename(note_name)
        if not path.exists():
            raise FileNotFoundError(f"Sample file not found: {path}")
        raw = await asyncio.to_thread(path.read_bytes)
        data, sample_rate = await asyncio.to_thread(decode_sample, raw)
        return SampleBuffer(note_name, note_name_to_midi(note_name), data, sample_rate)

    async def aclose(self) -> None:
        pass


def make_loader_from_config(cfg: Dict) -> SampleLoader:
    samples = cfg.get("audio", {}).get("samples", {})
    source = samples.get("source", "http")
    if source == "http":
        return HttpSampleLoader(
            base_url=str(samples.get("base_url", SAMPLE_BASE_URL)),
            timeout_s=float(samples.get("timeout_s", 10.0)),
        )
    if source == "directory":
        return DirectorySampleLoader(samples.get("directory", "./samples"))
    raise ValueError(f"Unsupported sample source: {source}")
