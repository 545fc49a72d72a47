from __future__ import annotations

"""Audio output backends.

An output pulls mono float32 blocks from a render callback (the audio
graph's mixer) and delivers them to a device, or nowhere.
"""

import logging
from typing import Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

PullFn = Callable[[int], np.ndarray]


class AudioOutput:
    """Abstract-like output interface for the audio graph."""

    def __init__(self, sample_rate: int, channels: int = 1) -> None:
        self.sample_rate = sample_rate
        self.channels = channels

    def start(self, pull: PullFn) -> None:
        """Begin pulling blocks from ``pull``."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources."""
        pass


class NullOutput(AudioOutput):
    """No device. The clock only moves when ``advance`` is called.

    Used for offline rendering and tests; rendered blocks are kept when
    ``keep`` is set.
    """

    def __init__(self, sample_rate: int = 44100, keep: bool = False) -> None:
        super().__init__(sample_rate=sample_rate)
        self.keep = keep
        self.blocks: List[np.ndarray] = []
        self._pull: Optional[PullFn] = None

    def start(self, pull: PullFn) -> None:
        self._pull = pull

    def advance(self, seconds: float, blocksize: int = 512) -> None:
        if self._pull is None:
            return
        remaining = int(round(seconds * self.sample_rate))
        while remaining > 0:
            frames = min(blocksize, remaining)
            block = self._pull(frames)
            if self.keep:
                self.blocks.append(block)
            remaining -= frames

    def rendered(self) -> np.ndarray:
        if not self.blocks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self.blocks)

    def close(self) -> None:
        self._pull = None


class SoundDeviceOutput(AudioOutput):
    """PortAudio output stream via sounddevice."""

    def __init__(
        self,
        sample_rate: int = 44100,
        channels: int = 2,
        blocksize: int = 512,
        device: Optional[int] = None,
        latency: str = "low",
    ) -> None:
        super().__init__(sample_rate=sample_rate, channels=channels)
        self.blocksize = blocksize
        self.device = device
        self.latency = latency
        self.underflows = 0
        self._stream = None

    def start(self, pull: PullFn) -> None:
        import sounddevice as sd  # deferred so the package imports without PortAudio

        def callback(outdata, frames, time_info, status):
            if status:
                self.underflows += 1
            block = pull(frames)
            outdata[:] = np.repeat(block.reshape(-1, 1), self.channels, axis=1)

        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            blocksize=self.blocksize,
            dtype="float32",
            device=self.device,
            latency=self.latency,
            callback=callback,
        )
        self._stream.start()
        logger.debug("Output stream started at %d Hz, blocksize %d", self.sample_rate, self.blocksize)

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        finally:
            self._stream = None
            if self.underflows:
                logger.info("Output stream closed after %d underflows", self.underflows)


def make_output_from_config(cfg: Dict) -> AudioOutput:
    """Factory for an AudioOutput from the config dict."""
    audio = cfg.get("audio", {})
    backend = audio.get("backend", "sounddevice")
    sample_rate = int(audio.get("sample_rate", 44100))
    if backend == "sounddevice":
        return SoundDeviceOutput(
            sample_rate=sample_rate,
            channels=int(audio.get("channels", 2)),
            blocksize=int(audio.get("blocksize", 512)),
            device=audio.get("device"),
        )
    if backend == "null":
        return NullOutput(sample_rate=sample_rate)
    raise ValueError(f"Unsupported backend: {backend}")
