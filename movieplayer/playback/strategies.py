"""
Estrategias de fuente de audio.

Todas cumplen el mismo contrato: `await speak(text, key)` termina cuando la línea
ha "sonado" (equivale al onComplete). Hay exactamente una por sesión, elegida por
Movie.audio_mode. Con el audio desactivado, cualquier estrategia sustituye la
salida por un retardo proporcional al texto y mantiene la cadencia.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..audio.cache import AudioCache, AudioKey
from ..audio.channel import AudioChannel
from ..config import PlaybackSettings, estimate_speech_ms
from ..domain.models import AudioMode, Movie
from ..tts.speech import PlatformSynthesizer, SpeechSynthesisError, UnavailableSynthesizer
from .track import ExternalTrack

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class AudioSourceStrategy:
    """Base común: audio desactivado y retardo sintético."""

    mode: AudioMode

    def __init__(self, settings: PlaybackSettings, sleep: Sleep = asyncio.sleep):
        self.settings = settings
        self._sleep = sleep
        self.audio_enabled = True

    async def speak(self, text: str, key: AudioKey) -> None:
        if not self.audio_enabled:
            await self.synthetic_delay(text)
            return
        await self._speak(text, key)

    async def _speak(self, text: str, key: AudioKey) -> None:
        raise NotImplementedError

    def stop_current(self) -> None:
        """Detiene el ítem en curso sin tocar ningún cache."""
        raise NotImplementedError

    def set_audio_enabled(self, enabled: bool) -> None:
        self.audio_enabled = enabled
        if not enabled:
            self.stop_current()

    async def synthetic_delay(self, text: str) -> None:
        await self._sleep(estimate_speech_ms(text, self.settings) / 1000.0)

    async def inter_line_pause(self) -> None:
        await self._sleep(self.settings.inter_line_pause_ms / 1000.0)

    def close(self) -> None:
        self.stop_current()


class ClipLookupStrategy(AudioSourceStrategy):
    """Reproduce clips pre-generados desde el AudioCache."""

    mode = AudioMode.GENERATED

    def __init__(
        self,
        cache: AudioCache,
        channel: AudioChannel,
        settings: PlaybackSettings,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(settings, sleep)
        self.cache = cache
        self.channel = channel

    async def _speak(self, text: str, key: AudioKey) -> None:
        buffer = self.cache.get(key)
        if buffer is None:
            # Generación fallida o todavía en camino
            logger.debug(f"Sin clip para {key.scene_id}/{key.step}, usando retardo estimado")
            await self.synthetic_delay(text)
            return

        self.channel.stop_current()
        await self.channel.play(buffer)
        await self.inter_line_pause()

    def stop_current(self) -> None:
        self.channel.stop_current()

    def close(self) -> None:
        self.channel.close()


class OnDeviceSpeechStrategy(AudioSourceStrategy):
    """Síntesis en vivo con el sintetizador de la plataforma; sin cache."""

    mode = AudioMode.ON_DEVICE

    def __init__(
        self,
        synthesizer: PlatformSynthesizer,
        settings: PlaybackSettings,
        sleep: Sleep = asyncio.sleep,
        voice_for: Optional[Callable[[AudioKey], Optional[str]]] = None,
    ):
        super().__init__(settings, sleep)
        self.synthesizer = synthesizer
        self.voice_for = voice_for

    async def _speak(self, text: str, key: AudioKey) -> None:
        if not self.synthesizer.available:
            # Sin síntesis en la plataforma: la línea se da por completada
            return

        self.synthesizer.cancel()
        voice = self.voice_for(key) if self.voice_for else None
        try:
            await self.synthesizer.speak(text, voice)
        except SpeechSynthesisError as e:
            logger.warning(f"Error del sintetizador en {key.scene_id}/{key.step}: {e}")
        await self.inter_line_pause()

    def stop_current(self) -> None:
        self.synthesizer.cancel()


class ExternalTrackStrategy(AudioSourceStrategy):
    """
    La pista externa marca el tiempo; speak() no hace nada.
    La selección de escena se hace por el intervalo [start, end) de cada escena.
    """

    mode = AudioMode.EXTERNAL_TRACK

    def __init__(
        self,
        movie: Movie,
        track: ExternalTrack,
        settings: PlaybackSettings,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(settings, sleep)
        self.movie = movie
        self.track = track

    async def speak(self, text: str, key: AudioKey) -> None:
        return None

    def scene_index_at(self, seconds: float) -> Optional[int]:
        """Índice de la escena activa en ese instante, o None si cae en un hueco."""
        for index, scene in enumerate(self.movie.scenes):
            if scene.contains(seconds):
                return index
        return None

    def is_past_end(self, seconds: float) -> bool:
        end = self.movie.playback_end
        return end is not None and seconds >= end

    def set_audio_enabled(self, enabled: bool) -> None:
        self.audio_enabled = enabled
        self.track.set_muted(not enabled)

    def stop_current(self) -> None:
        self.track.pause()

    def close(self) -> None:
        self.track.close()


def create_strategy(
    movie: Movie,
    settings: PlaybackSettings,
    cache: Optional[AudioCache] = None,
    channel: Optional[AudioChannel] = None,
    synthesizer: Optional[PlatformSynthesizer] = None,
    track: Optional[ExternalTrack] = None,
    sleep: Sleep = asyncio.sleep,
    voice_for: Optional[Callable[[AudioKey], Optional[str]]] = None,
) -> AudioSourceStrategy:
    """Elige la estrategia de la sesión según el modo de audio de la película."""
    if movie.audio_mode == AudioMode.GENERATED:
        return ClipLookupStrategy(
            cache if cache is not None else AudioCache(),
            channel or AudioChannel(sleep=sleep),
            settings,
            sleep,
        )
    if movie.audio_mode == AudioMode.ON_DEVICE:
        return OnDeviceSpeechStrategy(synthesizer or UnavailableSynthesizer(), settings, sleep, voice_for)
    return ExternalTrackStrategy(movie, track or ExternalTrack(), settings, sleep)
