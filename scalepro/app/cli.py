from __future__ import annotations

"""CLI for scale-pro: browse drills, print notes and ABC, play them."""

import argparse
import asyncio
import logging
from typing import Any, Dict

from .. import __version__
from ..audio.graph import AudioGraph
from ..audio.output import make_output_from_config
from ..audio.player import DrillPlayer
from ..audio.sampler import Envelope, PianoSampler, SamplerInitError
from ..audio.samples import make_loader_from_config
from ..config.config import load_config, validate_config
from ..drills.library import CATEGORIES, get_drill, get_drills_by_category
from ..drills.notation import drill_to_abc, pattern_to_abc
from ..drills.notes import format_notes_as_string, get_drill_notes_for_both_hands
from ..theory.keys import UnknownKeyError, normalize_key
from ..theory.scales import get_scale_intervals
from ..util.randomness import choose_random_key, seed_if_needed
from .explain import enable as explain_enable
from .explain import trace

logger = logging.getLogger(__name__)


def _add_drill_args(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--drill", required=True)
    sp.add_argument("--config", default=None)
    sp.add_argument("--key", default=None, help="Key name or 'random'")
    sp.add_argument("--scale", default=None)
    sp.add_argument("--octave", type=int, default=None)
    sp.add_argument("--bars", type=int, default=None, help="Bars to show; omit for the full exercise")
    sp.add_argument("--explain", action="store_true")


def _resolve(args: argparse.Namespace) -> Dict[str, Any]:
    """Merge config and CLI flags into the settings one command needs."""
    seed_if_needed()
    if args.explain:
        explain_enable(True)
    cfg = validate_config(load_config(args.config))
    logging.basicConfig(level=cfg["logging"]["level"], format="%(levelname)s %(name)s: %(message)s")

    drill_cfg = cfg["drill"]
    key = args.key or drill_cfg["key"]
    key = choose_random_key() if key.lower() == "random" else normalize_key(key)
    scale = args.scale or drill_cfg["scale"]
    settings = {
        "cfg": cfg,
        "drill": get_drill(args.drill),
        "key": key,
        "scale": scale,
        "intervals": get_scale_intervals(scale),
        "octave": args.octave if args.octave is not None else int(drill_cfg["octave"]),
        "bars": args.bars,
        "strict": cfg["theory"]["strict_intervals"],
    }
    trace("resolve", {"drill": args.drill, "key": key, "scale": scale, "octave": settings["octave"], "bars": args.bars})
    return settings


def _cmd_notes(s: Dict[str, Any]) -> int:
    hands = get_drill_notes_for_both_hands(
        s["drill"], s["key"], s["intervals"], s["octave"], s["bars"], s["strict"]
    )
    print(f"{s['drill'].name} in {s['key']} {s['scale']}")
    print(f"RH: {format_notes_as_string(hands['right'])}")
    print(f"LH: {format_notes_as_string(hands['left'])}")
    return 0


def _cmd_abc(s: Dict[str, Any], full: bool, pattern: bool) -> int:
    if pattern:
        print(pattern_to_abc(s["drill"], s["key"], s["intervals"], s["octave"]))
        return 0
    bars = s["bars"] if s["bars"] is not None else int(s["cfg"]["drill"]["bars_to_show"])
    print(drill_to_abc(s["drill"], s["key"], s["intervals"], s["octave"], show_full_exercise=full, bars_to_show=bars))
    return 0


def make_sampler_from_config(cfg: Dict[str, Any]) -> PianoSampler:
    audio = cfg["audio"]

    def graph_factory() -> AudioGraph:
        return AudioGraph(
            sample_rate=int(audio["sample_rate"]),
            volume=float(audio["volume"]),
            output=make_output_from_config(cfg),
        )

    return PianoSampler(
        loader=make_loader_from_config(cfg),
        graph_factory=graph_factory,
        envelope=Envelope(**audio["envelope"]),
        volume=float(audio["volume"]),
    )


async def _play(s: Dict[str, Any], bpm: float) -> int:
    cfg = s["cfg"]
    hands = get_drill_notes_for_both_hands(
        s["drill"], s["key"], s["intervals"], s["octave"], s["bars"], s["strict"]
    )
    sampler = make_sampler_from_config(cfg)
    try:
        await sampler.init()
    except SamplerInitError as e:
        print(f"ERROR: Audio init failed: {e}")
        return 1
    if not sampler.samples:
        print("ERROR: No piano samples could be loaded.")
        sampler.dispose()
        return 1

    player = DrillPlayer(sampler)
    print(f"Playing {s['drill'].name} in {s['key']} {s['scale']} at {bpm:g} bpm")
    try:
        steps = await player.play(hands["right"], hands["left"], bpm=bpm, velocity=float(cfg["drill"]["velocity"]))
        # let the last release ring out
        await asyncio.sleep(sampler.envelope.release)
    finally:
        sampler.dispose()
    print(f"Played {steps} steps.")
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="scale-pro", description="Piano scale and drill trainer")
    p.add_argument("--version", action="version", version=f"scale-pro {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    lp = sub.add_parser("list-drills")
    lp.add_argument("--category", default=None, choices=[c.id for c in CATEGORIES])

    np_ = sub.add_parser("notes")
    _add_drill_args(np_)

    ap = sub.add_parser("abc")
    _add_drill_args(ap)
    ap.add_argument("--full", action="store_true", help="Render the whole exercise")
    ap.add_argument("--pattern", action="store_true", help="Render only the base pattern")

    pp = sub.add_parser("play")
    _add_drill_args(pp)
    pp.add_argument("--bpm", type=float, default=None)

    args = p.parse_args(argv)

    if args.cmd == "list-drills":
        for cat in CATEGORIES:
            if args.category and cat.id != args.category:
                continue
            print(f"{cat.name}:")
            for d in get_drills_by_category(cat.id):
                print(f"  {d.id}: {d.name} - {d.description}")
        return 0

    try:
        s = _resolve(args)
    except (UnknownKeyError, KeyError) as e:
        print(f"ERROR: {e}")
        return 2

    if args.cmd == "notes":
        return _cmd_notes(s)
    if args.cmd == "abc":
        return _cmd_abc(s, args.full, args.pattern)
    if args.cmd == "play":
        bpm = args.bpm if args.bpm is not None else float(s["cfg"]["drill"]["bpm"])
        try:
            return asyncio.run(_play(s, bpm))
        except KeyboardInterrupt:
            print("\nStopped.")
            return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
