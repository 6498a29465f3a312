"""
Prefetch de audio (solo modo generated).

Las peticiones al backend de síntesis se hacen de una en una y con una espera
fija entre ellas: es el control de admisión frente al rate limit del servicio.
No se deben paralelizar.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, Set

from ..audio.cache import NARRATOR, AudioCache, AudioKey, audio_key
from ..audio.codec import AudioDecodeError, decode_pcm
from ..config import PlaybackSettings
from ..domain.models import Movie
from .voices import VoiceAssignment

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SpeechBackend(Protocol):
    async def synthesize(self, text: str, voice: str) -> Optional[str]:
        ...


class AudioPrefetcher:
    """Llena el AudioCache con la narración y las líneas de una escena."""

    def __init__(
        self,
        movie: Movie,
        cache: AudioCache,
        backend: Optional[SpeechBackend],
        voices: VoiceAssignment,
        settings: PlaybackSettings,
        sleep: Sleep = asyncio.sleep,
    ):
        self.movie = movie
        self.cache = cache
        self.backend = backend
        self.voices = voices
        self.settings = settings
        self._sleep = sleep
        self._in_flight: Set[AudioKey] = set()

    def is_ready(self, index: int) -> bool:
        """True si todos los clips que se pueden pedir de la escena ya están en cache."""
        scene = self.movie.scenes[index]
        if scene.description and audio_key(scene.id, NARRATOR) not in self.cache:
            return False
        return all(audio_key(scene.id, i) in self.cache for i in range(scene.line_count))

    async def prepare_scene(self, index: int) -> None:
        """
        Asegura que el audio de la escena esté en cache.
        Los fallos se absorben: la línea quedará con retardo sintético.
        """
        scene = self.movie.scenes[index]
        logger.info(f"Preparando audio de la escena {index + 1}/{self.movie.scene_count} ({scene.id})")

        # 1. Narrador
        key = audio_key(scene.id, NARRATOR)
        if scene.description and key not in self.cache:
            requested = await self._load(key, scene.narration_audio_data, scene.description, self.voices.narrator)
            if requested:
                await self._sleep(self.settings.narration_fetch_delay_ms / 1000.0)

        # 2. Diálogos
        for index_line, line in enumerate(scene.script):
            key = audio_key(scene.id, index_line)
            if key in self.cache:
                continue
            voice = self.voices.voice_for(line.character_id)
            requested = await self._load(key, line.audio_data, line.text, voice)
            if requested:
                await self._sleep(self.settings.line_fetch_delay_ms / 1000.0)

    async def _load(self, key: AudioKey, pregenerated: Optional[str], text: str, voice: str) -> bool:
        """
        Carga un clip en cache.

        Returns:
            True si se hizo una petición al backend (para aplicar la espera)
        """
        if key in self._in_flight:
            logger.debug(f"Petición ya en curso para {key}")
            return False

        if pregenerated:
            self._decode_into_cache(key, pregenerated)
            if key in self.cache:
                return False

        if self.backend is None:
            return False

        self._in_flight.add(key)
        try:
            payload = await self.backend.synthesize(text, voice)
        except Exception as e:
            logger.warning(f"Síntesis fallida para {key}: {e}")
            payload = None
        finally:
            self._in_flight.discard(key)

        if not payload:
            logger.warning(f"Sin audio para {key.scene_id}/{key.step}: se usará el retardo estimado")
            return True

        self._decode_into_cache(key, payload)
        return True

    def _decode_into_cache(self, key: AudioKey, payload: str) -> None:
        try:
            buffer = decode_pcm(
                payload,
                sample_rate=self.settings.sample_rate,
                channels=self.settings.channels,
                sample_width=self.settings.sample_width,
            )
        except AudioDecodeError as e:
            logger.error(f"Decodificación de audio fallida para {key.scene_id}/{key.step}: {e}")
            return
        self.cache.put(key, buffer)
