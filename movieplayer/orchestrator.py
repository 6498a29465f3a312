"""
Orquestador de la sesión de reproducción.
Recibe una película y monta cache, canal, estrategia, prefetch, secuenciador
y controlador para una sesión.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from .audio.cache import AudioCache
from .audio.channel import AudioChannel
from .audio.codec import AudioDecodeError, decode_track
from .config import PlaybackSettings, load_settings
from .domain.models import AudioMode, CharacterConfig, Movie
from .playback.controller import PlaybackController
from .playback.prefetch import AudioPrefetcher, SpeechBackend
from .playback.sequencer import SceneSequencer
from .playback.strategies import create_strategy
from .playback.track import ExternalTrack
from .playback.voices import VoiceAssignment, assign_voices
from .tts.speech import PlatformSynthesizer

logger = logging.getLogger(__name__)


class MoviePlayer:
    """
    El 'Director de Orquesta' de la reproducción.
    Una instancia por película; start() abre una sesión nueva.
    """

    def __init__(
        self,
        movie: Movie,
        settings: Optional[PlaybackSettings] = None,
        voices: Optional[VoiceAssignment] = None,
        configs: Iterable[CharacterConfig] = (),
        backend: Optional[SpeechBackend] = None,
        synthesizer: Optional[PlatformSynthesizer] = None,
        synthesizer_factory: Optional[Callable[[AudioChannel], PlatformSynthesizer]] = None,
        sink=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            movie: Película a reproducir (inmutable durante la sesión)
            settings: Tiempos y voces (se lee config/config.yaml si no se indica)
            voices: Mapa de voces ya construido (se asigna si no se indica)
            configs: Reparto del usuario para la asignación de voces
            backend: Función de síntesis para el modo generated
            synthesizer: Sintetizador de la plataforma para el modo on-device
            synthesizer_factory: Construye el sintetizador sobre el canal de la sesión
            sink: Salida de audio real (muda por defecto)
        """
        self.movie = movie
        self.settings = settings or load_settings()
        self.voices = voices or assign_voices(movie, configs, self.settings.voices)
        self.backend = backend
        self.synthesizer = synthesizer
        self.synthesizer_factory = synthesizer_factory
        self.sink = sink
        self.sleep = sleep
        self.clock = clock

        self.cache: Optional[AudioCache] = None
        self.channel: Optional[AudioChannel] = None
        self.sequencer: Optional[SceneSequencer] = None
        self.controller: Optional[PlaybackController] = None

    def _build_track(self) -> ExternalTrack:
        segment = None
        if self.movie.custom_audio_data:
            try:
                segment = decode_track(self.movie.custom_audio_data)
            except AudioDecodeError as e:
                logger.error(f"Pista externa ilegible, se usará solo el reloj: {e}")
        end = self.movie.playback_end
        if segment is not None and end is not None and len(segment) / 1000.0 < end:
            logger.warning(
                f"La pista dura {len(segment) / 1000.0:.1f}s y la última escena acaba en {end:.1f}s: "
                f"la película terminará con la pista"
            )
        kwargs = {"clock": self.clock} if self.clock else {}
        return ExternalTrack(segment=segment, duration=None if segment else self.movie.playback_end, sink=self.sink, **kwargs)

    def open_session(self, on_finished: Optional[Callable[[], None]] = None) -> PlaybackController:
        """
        Crea una sesión nueva (cache vacío) sin arrancarla.

        Returns:
            Controlador de la sesión
        """
        self.close()

        self.cache = AudioCache()
        self.channel = AudioChannel(sink=self.sink, sleep=self.sleep)
        track = self._build_track() if self.movie.audio_mode == AudioMode.EXTERNAL_TRACK else None

        synthesizer = self.synthesizer
        if synthesizer is None and self.synthesizer_factory is not None:
            synthesizer = self.synthesizer_factory(self.channel)
        if self.movie.audio_mode == AudioMode.ON_DEVICE and synthesizer is None:
            logger.warning("Sin sintetizador de plataforma: las líneas se completarán al instante")

        strategy = create_strategy(
            self.movie,
            self.settings,
            cache=self.cache,
            channel=self.channel,
            synthesizer=synthesizer,
            track=track,
            sleep=self.sleep,
            voice_for=self._voice_for_key,
        )

        prefetcher = None
        if self.movie.audio_mode == AudioMode.GENERATED:
            if self.backend is None:
                logger.warning("Modo generated sin backend de síntesis: solo clips pre-generados")
            prefetcher = AudioPrefetcher(
                self.movie, self.cache, self.backend, self.voices, self.settings, sleep=self.sleep
            )

        self.sequencer = SceneSequencer(
            self.movie,
            strategy,
            self.settings,
            prefetcher=prefetcher,
            on_finished=on_finished,
            sleep=self.sleep,
        )
        self.controller = PlaybackController(self.sequencer)
        logger.info(
            f"Sesión abierta: '{self.movie.title}' ({self.movie.scene_count} escenas, modo {self.movie.audio_mode.value})"
        )
        return self.controller

    def start(self, on_finished: Optional[Callable[[], None]] = None) -> PlaybackController:
        """Abre una sesión y empieza a reproducir."""
        controller = self.open_session(on_finished)
        controller.play()
        return controller

    async def play_to_end(self, on_finished: Optional[Callable[[], None]] = None) -> None:
        """Reproduce la película completa y espera al final."""
        controller = self.start(on_finished)
        try:
            await controller.wait_finished()
        finally:
            controller.close()

    def _voice_for_key(self, key) -> Optional[str]:
        scene = next((s for s in self.movie.scenes if s.id == key.scene_id), None)
        if scene is None or not isinstance(key.step, int):
            return self.voices.narrator
        return self.voices.voice_for(scene.script[key.step].character_id)

    def close(self) -> None:
        """Termina la sesión actual (si la hay) y descarta su cache."""
        if self.controller is not None:
            self.controller.close()
        self.controller = None
        self.sequencer = None
        self.cache = None
        self.channel = None
