"""Módulo de audio: cache de sesión, decodificación PCM y canal de salida."""

from .cache import AudioCache, AudioKey, NARRATOR, audio_key
from .channel import AudioChannel, FfplaySink, NullSink
from .codec import AudioDecodeError, decode_pcm, decode_track

__all__ = [
    "AudioCache", "AudioKey", "NARRATOR", "audio_key",
    "AudioChannel", "FfplaySink", "NullSink",
    "AudioDecodeError", "decode_pcm", "decode_track",
]
