"""PianoSampler: loading, voice allocation, envelopes and release."""

import asyncio
import logging

import pytest

from scalepro.audio.graph import MIN_GAIN
from scalepro.audio.sampler import Envelope, SamplerInitError, SequenceStep
from scalepro.audio.samples import SAMPLE_NOTES, sample_url

from .conftest import FakeLoader, null_graph


def advance(sampler, seconds: float) -> None:
    sampler.graph.output.advance(seconds)


class TestSampleUrls:
    def test_sharp_becomes_s(self) -> None:
        assert sample_url("D#4") == "https://tonejs.github.io/audio/salamander/Ds4.mp3"
        assert sample_url("A0", "http://x/") == "http://x/A0.mp3"

    def test_sample_grid(self) -> None:
        assert len(SAMPLE_NOTES) == 30
        assert SAMPLE_NOTES[0] == "A0" and SAMPLE_NOTES[-1] == "C8"


class TestInit:
    @pytest.mark.asyncio
    async def test_concurrent_init_loads_once(self, make_sampler) -> None:
        loader = FakeLoader()
        sampler = make_sampler(loader=loader)
        await asyncio.gather(sampler.init(), sampler.init(), sampler.when_loaded())
        assert sorted(loader.calls) == ["A4", "C4"]
        assert loader.closed == 1
        assert sampler.is_loaded and not sampler.is_loading
        await sampler.init()
        assert len(loader.calls) == 2
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_failed_sample_is_skipped(self, make_sampler, caplog) -> None:
        sampler = make_sampler(sample_notes=("C4", "A4", "C5"), loader=FakeLoader(fail={"A4"}))
        with caplog.at_level(logging.WARNING, logger="scalepro.audio.sampler"):
            await sampler.init()
        assert list(sampler.samples) == ["C4", "C5"]
        assert "A4" in caplog.text
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_samples_kept_in_note_order(self, make_sampler) -> None:
        loader = FakeLoader(delays={"C4": 0.02})
        sampler = make_sampler(sample_notes=("C4", "E4"), loader=loader)
        await sampler.init()
        assert list(sampler.samples) == ["C4", "E4"]
        # D4 is equidistant; the first sample wins
        assert sampler.find_closest_sample(62) == ("C4", 2)
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_setup_failure_reaches_every_waiter(self, make_sampler) -> None:
        def broken():
            raise RuntimeError("no audio device")

        sampler = make_sampler(graph_factory=broken)
        results = await asyncio.gather(sampler.init(), sampler.init(), return_exceptions=True)
        assert all(isinstance(r, SamplerInitError) for r in results)
        assert not sampler.is_loaded and not sampler.is_loading

        sampler.graph_factory = null_graph
        await sampler.init()
        assert sampler.is_loaded
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_failure_after_await_reaches_blocked_waiters(self, make_sampler) -> None:
        class ClosingFails(FakeLoader):
            async def aclose(self) -> None:
                raise RuntimeError("connection pool broken")

        graphs = []

        def factory():
            graphs.append(null_graph())
            return graphs[-1]

        loader = ClosingFails(delays={"C4": 0.01})
        sampler = make_sampler(loader=loader, graph_factory=factory)
        results = await asyncio.gather(
            sampler.init(), sampler.when_loaded(), sampler.init(), return_exceptions=True
        )
        assert [type(r) for r in results] == [SamplerInitError] * 3
        assert len(graphs) == 1
        assert graphs[0].closed
        assert sorted(loader.calls) == ["A4", "C4"]
        assert not sampler.is_loaded and not sampler.is_loading and sampler.graph is None

    @pytest.mark.asyncio
    async def test_dispose_during_load_sticks(self, make_sampler) -> None:
        graphs = []

        def factory():
            graphs.append(null_graph())
            return graphs[-1]

        sampler = make_sampler(loader=FakeLoader(delays={"C4": 0.05}), graph_factory=factory)
        task = asyncio.create_task(sampler.init())
        await asyncio.sleep(0.01)
        sampler.dispose()
        with pytest.raises(SamplerInitError):
            await task
        assert not sampler.is_loaded
        assert sampler.samples == {}
        assert sampler.graph is None
        assert graphs[0].closed

        await sampler.init()
        assert sampler.is_loaded
        assert sampler.graph is graphs[1]
        assert sampler.play_note("C") != ""
        sampler.dispose()


class TestPlayNote:
    @pytest.mark.asyncio
    async def test_not_loaded_returns_empty(self, make_sampler, caplog) -> None:
        sampler = make_sampler()
        with caplog.at_level(logging.WARNING, logger="scalepro.audio.sampler"):
            assert sampler.play_note("C") == ""
        assert "not loaded" in caplog.text

    @pytest.mark.asyncio
    async def test_no_samples_returns_empty(self, make_sampler) -> None:
        sampler = make_sampler(loader=FakeLoader(fail={"C4", "A4"}))
        await sampler.init()
        assert sampler.play_note("C") == ""
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_nearest_sample_and_detune(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        assert sampler.find_closest_sample(64) == ("C4", 4)
        voice_id = sampler.play_note("E", 4)
        assert voice_id.startswith("E4-")
        voice = sampler.active_voices["E4"][0]
        assert voice.voice_id == voice_id
        assert voice.source.detune.value == 400
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_flat_names_resolve(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.play_note("Bb", 4)
        assert sampler.active_voices["Bb4"][0].source.detune.value == 100
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_envelope_shape(self, make_sampler) -> None:
        env = Envelope(attack=0.01, decay=0.1, sustain=0.5, release=0.2)
        sampler = make_sampler(envelope=env)
        await sampler.init()
        sampler.play_note("C", 4, velocity=0.8)
        gain = sampler.active_voices["C4"][0].gain.gain
        assert gain.value_at(0.0) == pytest.approx(MIN_GAIN)
        assert gain.value_at(0.01) == pytest.approx(0.8)
        assert gain.value_at(0.11) == pytest.approx(0.4)
        assert gain.value_at(5.0) == pytest.approx(0.4)
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_same_note_stacks_voices(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        a = sampler.play_note("C")
        b = sampler.play_note("C")
        assert a != b
        assert len(sampler.active_voices["C4"]) == 2
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_voice_removed_when_it_ends(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.play_note("C", 4, duration=0.05)
        sampler.play_note("D", 4)
        advance(sampler, 0.5)
        await asyncio.sleep(0)
        assert sampler.active_voices["C4"] == []
        assert len(sampler.active_voices["D4"]) == 1
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_chord(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        ids = sampler.play_chord([("C", 4), ("E", 4), ("G", 4)])
        assert len(ids) == 3 and all(ids)
        starts = {v[0].start_time for v in sampler.active_voices.values()}
        assert len(starts) == 1
        sampler.dispose()


class TestRelease:
    @pytest.mark.asyncio
    async def test_stop_note(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.play_note("C")
        voice = sampler.active_voices["C4"][0]
        sampler.stop_note("C", 4)
        assert sampler.active_voices["C4"] == []
        assert voice.source.stop_time == pytest.approx(0.25 + 0.05)
        assert voice.gain.gain.value_at(0.25) == pytest.approx(MIN_GAIN)
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_stop_unknown_note_is_noop(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.stop_note("F#", 2)
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_stop_all_is_quick_and_synchronous(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.play_note("C")
        sampler.play_note("E")
        voices = [v for vs in sampler.active_voices.values() for v in vs]
        sampler.stop_all()
        assert sampler.active_voices == {}
        assert all(v.source.stop_time == pytest.approx(0.15 + 0.05) for v in voices)
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_release_of_finished_source_is_quiet(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.play_note("C")
        sampler.active_voices["C4"][0].source.ended = True
        sampler.stop_all()
        assert sampler.active_voices == {}
        sampler.dispose()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_sequence_waits_between_steps(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        loop = asyncio.get_running_loop()
        started = loop.time()
        await sampler.play_sequence([SequenceStep("C", duration=0.02), SequenceStep("E", duration=0.02, delay=0.01)])
        assert loop.time() - started >= 0.045
        assert len(sampler.active_voices["C4"]) == 1
        assert len(sampler.active_voices["E4"]) == 1
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_set_volume_clamps(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.set_volume(1.5)
        assert sampler.graph.master.gain.value == 1.0
        sampler.set_volume(-1)
        assert sampler.volume == 0.0
        sampler.dispose()

    @pytest.mark.asyncio
    async def test_dispose_twice(self, make_sampler) -> None:
        sampler = make_sampler()
        await sampler.init()
        sampler.play_note("C")
        sampler.dispose()
        sampler.dispose()
        assert sampler.graph is None and not sampler.samples
        assert sampler.play_note("C") == ""
