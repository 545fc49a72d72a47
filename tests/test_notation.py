"""ABC primitives and the drill notation entry points."""

import pytest

from scalepro.drills.library import get_drill
from scalepro.drills.notation import chord_progression_to_abc, chords_per_bar, drill_to_abc, pattern_to_abc
from scalepro.theory.abc import abc_header, duration_to_abc, event_token, midi_to_abc, render_staff
from scalepro.theory.transpose import transpose_chromatic


def voice_line(abc: str, voice: str) -> str:
    prefix = f"[V:{voice}] "
    for line in abc.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):]
    raise AssertionError(f"no {voice} line")


class TestMidiToAbc:
    @pytest.mark.parametrize(
        "midi,token",
        [(60, "c"), (48, "C"), (36, "C,"), (24, "C,,"), (72, "c'"), (84, "c''"), (61, "^c"), (59, "B")],
    )
    def test_octave_marks(self, midi, token) -> None:
        assert midi_to_abc(midi) == token

    def test_flats(self) -> None:
        assert midi_to_abc(61, use_flats=True) == "_d"
        assert midi_to_abc(46, use_flats=True) == "_B,"


class TestDurations:
    @pytest.mark.parametrize("code,text", [(1, "8"), (2, "4"), (4, "2"), (8, ""), (16, "/2"), (32, "/4")])
    def test_eighth_unit(self, code, text) -> None:
        assert duration_to_abc(code, 8) == text

    @pytest.mark.parametrize("code,text", [(1, "4"), (2, "2"), (4, ""), (8, "/2"), (16, "/4")])
    def test_quarter_unit(self, code, text) -> None:
        assert duration_to_abc(code, 4) == text

    def test_unknown_code_is_unit_length(self) -> None:
        assert duration_to_abc(3, 8) == ""

    def test_chords_per_bar(self) -> None:
        assert [chords_per_bar(d) for d in (1, 2, 4)] == [1, 2, 4]
        assert chords_per_bar(2, beats_per_bar=3) == 1
        assert chords_per_bar(1, beats_per_bar=3) == 1


class TestRenderStaff:
    def test_bars_and_beams(self) -> None:
        assert render_staff(list("abcdefgh"), 4, 4) == "abcd | efgh|]"
        assert render_staff(list("abcdefgh"), 8, 4) == "abcd efgh|]"

    def test_unbeamed(self) -> None:
        assert render_staff(["a", "b", "c"], 2) == "a b | c|]"

    def test_no_bar_after_last_token(self) -> None:
        assert render_staff(list("abcd"), 2, 2) == "ab | cd|]"

    def test_empty(self) -> None:
        assert render_staff([], 4) == "|]"

    def test_event_tokens(self) -> None:
        c, e, g = (transpose_chromatic(s, "C") for s in (0, 4, 7))
        assert event_token(c, suffix="/2") == "c/2"
        assert event_token([c, e, g], suffix="2") == "[ceg]2"
        assert event_token([c], suffix="2") == "c2"

    def test_header(self) -> None:
        assert abc_header("T", "2/4", 8, "Eb") == [
            "X:1",
            "T:T",
            "M:2/4",
            "L:1/8",
            "%%staves {RH LH}",
            'V:RH clef=treble name="R.H."',
            'V:LH clef=bass name="L.H."',
            "K:Eb",
        ]


class TestDrillToAbc:
    def test_one_bar_of_hanon(self, major) -> None:
        abc = drill_to_abc(get_drill("hanon-1"), "C", major, bars_to_show=1)
        assert "M:2/4" in abc.splitlines()
        assert "T:Hanon No. 1" in abc.splitlines()
        assert voice_line(abc, "RH") == "c/2e/2f/2g/2 a/2g/2f/2e/2|]"
        assert voice_line(abc, "LH") == "C/2E/2F/2G/2 A/2G/2F/2E/2|]"

    def test_flat_key(self, major) -> None:
        abc = drill_to_abc(get_drill("hanon-1"), "F", major, bars_to_show=1)
        assert "K:F" in abc.splitlines()
        assert voice_line(abc, "RH") == "f/2a/2_b/2c'/2 d'/2c'/2_b/2a/2|]"

    def test_bar_count(self, major) -> None:
        abc = drill_to_abc(get_drill("hanon-1"), "C", major, show_full_exercise=True)
        assert voice_line(abc, "RH").count(" | ") == 15

    def test_one_bar_is_strict_prefix_of_full(self, major) -> None:
        for drill_id in ("hanon-1", "five-finger", "scale-thirds", "block-triads"):
            drill = get_drill(drill_id)
            one = voice_line(drill_to_abc(drill, "D", major, bars_to_show=1), "RH")
            full = voice_line(drill_to_abc(drill, "D", major, show_full_exercise=True), "RH")
            body = one[: -len("|]")]
            assert full.startswith(body)
            assert len(full) > len(one)

    def test_pattern_matches_first_bar(self, major) -> None:
        drill = get_drill("hanon-1")
        pattern = pattern_to_abc(drill, "A", major)
        assert "T:Hanon No. 1 - Pattern" in pattern.splitlines()
        assert voice_line(pattern, "RH") == voice_line(drill_to_abc(drill, "A", major, bars_to_show=1), "RH")
        full = voice_line(drill_to_abc(drill, "A", major, show_full_exercise=True), "RH")
        assert full.startswith(voice_line(pattern, "RH")[:-2])


class TestChordProgressionAbc:
    def test_quarter_chords(self) -> None:
        abc = chord_progression_to_abc(get_drill("one-four-five-one"), "C", show_full_exercise=True)
        lines = abc.splitlines()
        assert "M:4/4" in lines and "L:1/4" in lines
        assert voice_line(abc, "RH") == "[ceg] [cfa] [Bdg] [ceg] | [ceg] [cfa] [Bdg] [ceg]|]"
        assert voice_line(abc, "LH") == "C, F, G, C, | C, F, G, C,|]"

    def test_half_note_chords(self, major) -> None:
        abc = drill_to_abc(get_drill("two-five-one"), "C", major)
        assert voice_line(abc, "RH") == "[dfa]2 [Bdf]2 | [ceg]2 [ceg]2|]"

    def test_whole_note_chords_one_per_bar(self, major) -> None:
        abc = drill_to_abc(get_drill("pop-progression"), "C", major, bars_to_show=2)
        assert voice_line(abc, "RH") == "[ceg]4 | [Bdg]4|]"

    def test_pattern_shows_every_chord_once(self, major) -> None:
        drill = get_drill("one-four-five-one")
        abc = pattern_to_abc(drill, "C", major)
        assert voice_line(abc, "RH") == "[ceg] [cfa] [Bdg] [ceg]|]"
