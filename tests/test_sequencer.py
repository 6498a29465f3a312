import asyncio

from movieplayer.audio.cache import NARRATOR, audio_key
from movieplayer.config import PlaybackSettings, VoiceCatalog
from movieplayer.orchestrator import MoviePlayer
from movieplayer.playback.controller import PlaybackController
from movieplayer.playback.cursor import NARRATION, PRE_ROLL, PlaybackState
from movieplayer.playback.sequencer import SceneSequencer

from conftest import FakeBackend, FakeClock, RecordingSink, RecordingStrategy, make_movie, pcm_payload, wait_until

FULL_ORDER = [
    audio_key("s0", NARRATOR),
    audio_key("s0", 0),
    audio_key("s0", 1),
    audio_key("s1", NARRATOR),
    audio_key("s2", NARRATOR),
    audio_key("s2", 0),
]


def build(settings, block=None, movie=None):
    movie = movie or make_movie((2, 0, 1), mode="on-device")
    strategy = RecordingStrategy(settings, block=block)
    finished = []
    sequencer = SceneSequencer(movie, strategy, settings, on_finished=lambda: finished.append(True))
    return PlaybackController(sequencer), strategy, finished


def test_traverses_narration_then_lines_and_finishes_once(settings):
    async def scenario():
        controller, strategy, finished = build(settings)
        controller.play()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert strategy.calls == FULL_ORDER
        assert finished == [True]
        snapshot = controller.snapshot()
        assert snapshot.finished
        assert snapshot.state == PlaybackState.FINISHED
        assert not snapshot.is_playing

        # advance() tras el final no hace nada
        controller.sequencer.advance()
        assert finished == [True]

    asyncio.run(scenario())


def test_scene_without_description_skips_narration(settings):
    async def scenario():
        movie = make_movie((1, 1), mode="on-device", descriptions=["", "Amanece"])
        controller, strategy, _ = build(settings, movie=movie)
        controller.play()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert strategy.calls == [audio_key("s0", 0), audio_key("s1", NARRATOR), audio_key("s1", 0)]

    asyncio.run(scenario())


def test_restart_mid_line_leaves_no_stale_callbacks(settings):
    async def scenario():
        controller, strategy, finished = build(settings, block={audio_key("s0", 1)})
        controller.play()
        await wait_until(lambda: audio_key("s0", 1) in strategy.calls)

        controller.restart()
        assert controller.snapshot().scene_index == 0
        await wait_until(lambda: strategy.calls.count(audio_key("s0", 1)) == 2)

        strategy.block.clear()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert strategy.calls == FULL_ORDER[:3] + FULL_ORDER
        assert finished == [True]

    asyncio.run(scenario())


def test_pause_keeps_position_and_resume_repeats_the_line(settings):
    async def scenario():
        controller, strategy, _ = build(settings, block={audio_key("s0", 0)})
        controller.play()
        await wait_until(lambda: audio_key("s0", 0) in strategy.calls)

        controller.pause()
        snapshot = controller.snapshot()
        assert not snapshot.is_playing
        assert snapshot.state == PlaybackState.DIALOGUE
        assert snapshot.current_line.text == "Línea 0.0"
        assert strategy.stops >= 1

        await asyncio.sleep(0.01)
        assert controller.snapshot().step == 0

        controller.play()
        await wait_until(lambda: strategy.calls.count(audio_key("s0", 0)) == 2)
        strategy.block.clear()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert strategy.calls[:3] == [audio_key("s0", NARRATOR), audio_key("s0", 0), audio_key("s0", 0)]

    asyncio.run(scenario())


def test_play_after_finish_starts_again(settings):
    async def scenario():
        controller, strategy, finished = build(settings)
        controller.play()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        controller.play()
        assert not controller.snapshot().finished
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert strategy.calls == FULL_ORDER + FULL_ORDER
        assert finished == [True, True]

    asyncio.run(scenario())


def test_stalled_line_is_skipped_when_step_timeout_is_set():
    async def scenario():
        settings = PlaybackSettings(step_timeout_seconds=0.05)
        controller, strategy, finished = build(settings, block={audio_key("s0", 0)})
        controller.play()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert strategy.calls == FULL_ORDER
        assert finished == [True]

    asyncio.run(scenario())


def test_listener_errors_do_not_break_playback(settings):
    async def scenario():
        controller, strategy, _ = build(settings)
        states = []

        def broken(snapshot):
            raise RuntimeError("observador roto")

        controller.subscribe(broken)
        unsubscribe = controller.subscribe(lambda s: states.append(s.state))
        controller.play()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)
        unsubscribe()

        assert PlaybackState.NARRATING in states
        assert PlaybackState.DIALOGUE in states
        assert states[-1] == PlaybackState.FINISHED

    asyncio.run(scenario())


def test_fullscreen_toggle_is_reported(settings):
    controller, _, _ = build(settings)
    assert controller.toggle_fullscreen() is True
    assert controller.snapshot().fullscreen
    assert controller.toggle_fullscreen() is False


def test_generated_mode_prefetches_before_narrating(settings):
    async def scenario():
        clock = FakeClock()
        backend = FakeBackend(gate=asyncio.Event())
        sink = RecordingSink()
        player = MoviePlayer(make_movie(), settings=settings, backend=backend, sink=sink, sleep=clock.sleep)
        controller = player.start()

        await wait_until(lambda: len(backend.calls) == 1)
        snapshot = controller.snapshot()
        assert snapshot.preparing_audio
        assert snapshot.state == PlaybackState.PRE_ROLL
        assert sink.started == []

        backend.gate.set()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert not controller.snapshot().preparing_audio
        assert backend.max_in_flight == 1
        assert len(backend.calls) == 6
        assert len(sink.started) == 6
        player.close()

    asyncio.run(scenario())


def test_generated_mode_uses_assigned_voices(settings):
    async def scenario():
        clock = FakeClock()
        backend = FakeBackend()
        player = MoviePlayer(make_movie(), settings=settings, backend=backend, sleep=clock.sleep)
        await asyncio.wait_for(player.play_to_end(), timeout=5)

        voices = dict((text, voice) for text, voice in backend.calls)
        assert voices["Narración de la escena 0"] == VoiceCatalog().narrator
        assert voices["Línea 0.0"] == player.voices.get("c1")
        assert voices["Línea 0.1"] == player.voices.get("c2")

    asyncio.run(scenario())


def test_restart_keeps_cached_audio_and_skips_pre_roll(settings):
    async def scenario():
        clock = FakeClock()
        backend = FakeBackend()
        player = MoviePlayer(make_movie(), settings=settings, backend=backend, sleep=clock.sleep)
        controller = player.start()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)
        calls = len(backend.calls)

        controller.sequencer.reset()
        assert controller.snapshot().step == NARRATION
        controller.play()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert len(backend.calls) == calls
        player.close()

    asyncio.run(scenario())


def test_new_session_starts_with_empty_cache(settings):
    async def scenario():
        player = MoviePlayer(make_movie(), settings=settings, backend=FakeBackend(), sleep=FakeClock().sleep)
        controller = player.open_session()
        assert len(player.cache) == 0
        assert controller.snapshot().step == PRE_ROLL
        player.close()
        assert player.controller is None

    asyncio.run(scenario())


def test_disabling_audio_mid_line_switches_to_estimated_delay(settings):
    async def scenario():
        # Los clips duran 3 s y el reloj retiene esa espera: la narración queda sonando
        clock = FakeClock(hold=lambda seconds: seconds == 3.0)
        sink = RecordingSink()
        backend = FakeBackend(payload=pcm_payload(3.0))
        player = MoviePlayer(make_movie(), settings=settings, backend=backend, sink=sink, sleep=clock.sleep)
        controller = player.start()

        await wait_until(lambda: len(sink.started) == 1)
        assert controller.snapshot().is_narrating

        controller.set_audio_enabled(False)
        assert sink.stops >= 1
        assert not controller.snapshot().audio_enabled

        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert len(sink.started) == 1
        # Narración repetida con el retardo estimado (piso de 2 s)
        assert 2.0 in clock.sleeps
        player.close()

    asyncio.run(scenario())


def test_generated_mode_with_failed_synthesis_still_finishes(settings):
    async def scenario():
        clock = FakeClock()
        backend = FakeBackend(fail_texts={"Línea 0.1"})
        sink = RecordingSink()
        player = MoviePlayer(make_movie(), settings=settings, backend=backend, sink=sink, sleep=clock.sleep)
        controller = player.start()
        await asyncio.wait_for(controller.wait_finished(), timeout=5)

        assert len(sink.started) == 5
        assert audio_key("s0", 1) not in player.cache
        player.close()

    asyncio.run(scenario())
