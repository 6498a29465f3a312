from movieplayer.playback.cursor import NARRATION, PRE_ROLL, TRACKING, Cursor, PlaybackState
from movieplayer.playback.presentation import GENERATING_PLACEHOLDER, UNKNOWN_SPEAKER, project_frame
from movieplayer.playback.sequencer import PlaybackSnapshot

from conftest import make_movie, make_track_movie


def snapshot_at(movie, scene_index, step, finished=False, preparing=False):
    scene = movie.scenes[scene_index]
    state = PlaybackState.FINISHED if finished else Cursor(scene_index, step).state(scene)
    line = scene.script[step] if state == PlaybackState.DIALOGUE else None
    return PlaybackSnapshot(
        scene_index=scene_index,
        scene_count=movie.scene_count,
        step=step,
        state=state,
        is_narrating=state == PlaybackState.NARRATING,
        current_line=line,
        preparing_audio=preparing,
        audio_enabled=True,
        is_playing=not finished,
        finished=finished,
    )


def test_narration_shows_subtitle_without_bubble():
    movie = make_movie()
    frame = project_frame(movie, snapshot_at(movie, 0, NARRATION))

    assert frame.subtitle == "Narración de la escena 0"
    assert frame.bubble is None
    assert frame.speaker is None
    assert frame.background == GENERATING_PLACEHOLDER


def test_dialogue_shows_speaker_bubble():
    movie = make_movie()
    frame = project_frame(movie, snapshot_at(movie, 0, 1))

    assert frame.subtitle is None
    assert frame.speaker == "Pedro"
    assert frame.bubble == "Línea 0.1"


def test_unknown_speaker_is_marked():
    movie = make_movie()
    movie.scenes[0].script[0].character_id = "nadie"
    frame = project_frame(movie, snapshot_at(movie, 0, 0))
    assert frame.speaker == UNKNOWN_SPEAKER


def test_progress_and_scene_number():
    movie = make_movie((1, 1, 1, 1))
    frame = project_frame(movie, snapshot_at(movie, 2, PRE_ROLL, preparing=True))

    assert frame.scene_number == 3
    assert frame.scene_count == 4
    assert frame.progress == 0.5
    assert frame.preparing_audio
    assert frame.subtitle is None


def test_background_image_and_color_are_passed_through():
    movie = make_movie((1,))
    movie.scenes[0].background_image_url = "https://example.com/a.png"
    movie.scenes[0].background_color = "#112233"
    frame = project_frame(movie, snapshot_at(movie, 0, NARRATION))

    assert frame.background == "https://example.com/a.png"
    assert frame.background_color == "#112233"


def test_external_track_subtitle_is_continuous():
    movie = make_track_movie()
    frame = project_frame(movie, snapshot_at(movie, 1, TRACKING))
    assert frame.subtitle == "Escena 1"
    assert frame.bubble is None

    movie.scenes[1].description = ""
    frame = project_frame(movie, snapshot_at(movie, 1, TRACKING))
    assert frame.subtitle == "Hola 1"


def test_finished_frame():
    movie = make_movie()
    frame = project_frame(movie, snapshot_at(movie, 2, 1, finished=True))
    assert frame.finished
    assert frame.bubble is None
