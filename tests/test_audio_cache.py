import pytest
from pydub import AudioSegment

from movieplayer.audio.cache import NARRATOR, AudioCache, audio_key


def test_narrator_key_round_trip_only_matches_itself():
    cache = AudioCache()
    buffer = AudioSegment.silent(duration=100)
    cache.put(audio_key("s1", NARRATOR), buffer)

    assert cache.get(audio_key("s1", NARRATOR)) is buffer
    assert cache.get(audio_key("s1", 0)) is None
    assert cache.get(audio_key("s2", NARRATOR)) is None
    assert len(cache) == 1


def test_first_lines_of_different_scenes_do_not_collide():
    cache = AudioCache()
    a = AudioSegment.silent(duration=100)
    b = AudioSegment.silent(duration=200)
    cache.put(audio_key("s1", 0), a)
    cache.put(audio_key("s2", 0), b)

    assert cache.get(audio_key("s1", 0)) is a
    assert cache.get(audio_key("s2", 0)) is b
    assert audio_key("s1", 1) not in cache


def test_invalid_step_is_rejected():
    with pytest.raises(ValueError):
        audio_key("s1", "line-0")
