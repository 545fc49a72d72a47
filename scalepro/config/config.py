from __future__ import annotations

"""Configuration loading and validation for scale-pro.

Loads YAML configuration, applies defaults, and validates enumerations and
numeric ranges for the CLI and the playback engine.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..theory.keys import UnknownKeyError, normalize_key
from ..theory.scales import SCALES, normalize_scale_name

logger = logging.getLogger(__name__)

ALLOWED_BACKENDS = {"sounddevice", "null"}
ALLOWED_SAMPLE_SOURCES = {"http", "directory"}
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}
ENVELOPE_DEFAULTS = {"attack": 0.005, "decay": 0.15, "sustain": 0.7, "release": 0.25}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(Path(__file__).with_name("defaults.yml"))


def _clamp01(section: Dict[str, Any], name: str, default: float) -> None:
    try:
        value = float(section.get(name, default))
    except (TypeError, ValueError):
        logger.warning("Invalid %s %r, using %s", name, section.get(name), default)
        value = default
    section[name] = max(0.0, min(1.0, value))


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Unknown enum values fall back to the default with a warning; the
    drill key must be a real key name or "random".

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.

    Raises:
        UnknownKeyError: ``drill.key`` is not a key name.
    """
    cfg.setdefault("audio", {})
    cfg.setdefault("drill", {})
    cfg.setdefault("theory", {})
    cfg.setdefault("logging", {})

    audio = cfg["audio"]
    drill = cfg["drill"]
    theory = cfg["theory"]
    log_cfg = cfg["logging"]

    audio.setdefault("backend", "sounddevice")
    audio.setdefault("sample_rate", 44100)
    audio.setdefault("channels", 2)
    audio.setdefault("blocksize", 512)
    audio.setdefault("volume", 0.7)
    samples = audio.setdefault("samples", {})
    samples.setdefault("source", "http")
    samples.setdefault("base_url", "https://tonejs.github.io/audio/salamander/")
    samples.setdefault("directory", "./samples")
    samples.setdefault("timeout_s", 10.0)
    envelope = audio.setdefault("envelope", {})
    for name, default in ENVELOPE_DEFAULTS.items():
        envelope.setdefault(name, default)

    drill.setdefault("key", "C")
    drill.setdefault("scale", "major")
    drill.setdefault("octave", 4)
    drill.setdefault("bars_to_show", 4)
    drill.setdefault("bpm", 90)
    drill.setdefault("velocity", 0.8)

    theory.setdefault("strict_intervals", False)
    log_cfg.setdefault("level", "WARNING")

    backend = audio.get("backend")
    if backend not in ALLOWED_BACKENDS:
        logger.warning("Unsupported audio backend '%s', falling back to 'sounddevice'.", backend)
        audio["backend"] = "sounddevice"

    source = samples.get("source")
    if source not in ALLOWED_SAMPLE_SOURCES:
        logger.warning("Unsupported sample source '%s', using 'http'.", source)
        samples["source"] = "http"

    _clamp01(audio, "volume", 0.7)
    _clamp01(drill, "velocity", 0.8)
    _clamp01(envelope, "sustain", ENVELOPE_DEFAULTS["sustain"])
    for name in ("attack", "decay", "release"):
        value = float(envelope[name])
        if value < 0:
            logger.warning("Negative envelope %s %s, using %s", name, value, ENVELOPE_DEFAULTS[name])
            value = ENVELOPE_DEFAULTS[name]
        envelope[name] = value

    scale = normalize_scale_name(str(drill.get("scale")))
    if scale not in SCALES:
        logger.warning("Unsupported scale '%s', using 'major'.", drill.get("scale"))
        scale = "major"
    drill["scale"] = scale

    key = str(drill.get("key"))
    if key.lower() != "random":
        try:
            key = normalize_key(key)
        except UnknownKeyError:
            print(f"ERROR: Unknown key in config: {key}", file=sys.stderr)
            raise
    drill["key"] = key

    if float(drill.get("bpm", 90)) <= 0:
        logger.warning("Non-positive bpm %s, using 90.", drill.get("bpm"))
        drill["bpm"] = 90

    theory["strict_intervals"] = bool(theory.get("strict_intervals"))

    level = str(log_cfg.get("level", "WARNING")).upper()
    if level not in ALLOWED_LOG_LEVELS:
        logger.warning("Unsupported log level '%s', using 'WARNING'.", level)
        level = "WARNING"
    log_cfg["level"] = level

    return cfg
