"""
Secuenciador de escenas.

Máquina de estados explícita sobre un cursor (scene_index, step). Una única
tarea "driver" ejecuta el paso actual (prefetch o locución) y al terminar llama
a advance(), la única operación que mueve el cursor en los modos generated y
on-device. En modo external-track el cursor lo mueve el reloj de la pista.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from ..audio.cache import NARRATOR, audio_key
from ..config import PlaybackSettings
from ..domain.models import AudioMode, DialogueLine, Movie, Scene
from .cursor import NARRATION, PRE_ROLL, TRACKING, Cursor, PlaybackState
from .prefetch import AudioPrefetcher
from .strategies import AudioSourceStrategy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Lo que el reproductor expone a la interfaz."""
    scene_index: int
    scene_count: int
    step: int
    state: PlaybackState
    is_narrating: bool
    current_line: Optional[DialogueLine]
    preparing_audio: bool
    audio_enabled: bool
    is_playing: bool
    finished: bool
    fullscreen: bool = False
    track_time: Optional[float] = None


Listener = Callable[[PlaybackSnapshot], None]


class SceneSequencer:
    """Recorre escenas, narración y diálogos invocando la estrategia de audio activa."""

    def __init__(
        self,
        movie: Movie,
        strategy: AudioSourceStrategy,
        settings: PlaybackSettings,
        prefetcher: Optional[AudioPrefetcher] = None,
        on_finished: Optional[Callable[[], None]] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.movie = movie
        self.strategy = strategy
        self.settings = settings
        self.prefetcher = prefetcher
        self.on_finished = on_finished
        self._sleep = sleep

        self.cursor = Cursor(0, PRE_ROLL)
        self.is_playing = False
        self.preparing_audio = False
        self.finished = False
        self.fullscreen = False
        self.track_time: Optional[float] = None

        self._driver: Optional[asyncio.Task] = None
        self._finished_notified = False
        self._finished_event = asyncio.Event()
        self._listeners: List[Listener] = []
        self._warned_missing_end = False

    # ------------------------------------------------------------------
    # Estado derivado
    # ------------------------------------------------------------------

    @property
    def external(self) -> bool:
        return self.strategy.mode == AudioMode.EXTERNAL_TRACK

    @property
    def scene(self) -> Scene:
        return self.movie.scenes[self.cursor.scene_index]

    @property
    def state(self) -> PlaybackState:
        if self.finished:
            return PlaybackState.FINISHED
        return self.cursor.state(self.scene)

    @property
    def is_narrating(self) -> bool:
        return self.state == PlaybackState.NARRATING

    @property
    def current_line(self) -> Optional[DialogueLine]:
        if self.state != PlaybackState.DIALOGUE:
            return None
        return self.scene.script[self.cursor.step]

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            scene_index=self.cursor.scene_index,
            scene_count=self.movie.scene_count,
            step=self.cursor.step,
            state=self.state,
            is_narrating=self.is_narrating,
            current_line=self.current_line,
            preparing_audio=self.preparing_audio,
            audio_enabled=self.strategy.audio_enabled,
            is_playing=self.is_playing,
            finished=self.finished,
            fullscreen=self.fullscreen,
            track_time=self.track_time,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un observador de cambios. Devuelve la función para desuscribir."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Error en un observador de la reproducción")

    # ------------------------------------------------------------------
    # Transiciones
    # ------------------------------------------------------------------

    def advance(self) -> None:
        """Avanza un paso: narración -> diálogos -> fin de escena -> siguiente escena."""
        if self.finished:
            return

        step = self.cursor.step
        if step == TRACKING:
            return
        if step == PRE_ROLL:
            self._move(self.cursor.with_step(NARRATION))
        elif step < self.scene.line_count:
            self._move(self.cursor.with_step(step + 1))
        elif self.cursor.scene_index < self.movie.scene_count - 1:
            self._move(Cursor(self.cursor.scene_index + 1, NARRATION))
        else:
            self._finish()

    def on_time_update(self, seconds: float) -> None:
        """Muestra de la pista externa: salta a la escena cuyo [start, end) contiene el instante."""
        self.track_time = seconds
        if self.finished:
            return

        if self.strategy.is_past_end(seconds):
            self._finish()
            return

        if self.strategy.track.ended:
            # Pista más corta que la última escena: su final también termina la película
            logger.warning(f"La pista terminó en {self.strategy.track.position:.1f}s antes del final de las escenas")
            self._finish()
            return

        if self.movie.playback_end is None and not self._warned_missing_end:
            self._warned_missing_end = True
            logger.warning("La última escena no tiene end_time: la película no terminará sola")

        index = self.strategy.scene_index_at(seconds)
        if index is None:
            # Hueco entre escenas: se mantiene la actual
            index = self.cursor.scene_index
        self._move(Cursor(index, TRACKING))

    def _move(self, cursor: Cursor) -> None:
        index = min(max(cursor.scene_index, 0), self.movie.scene_count - 1)
        cursor = Cursor(index, cursor.step)
        if cursor == self.cursor:
            return
        if cursor.scene_index != self.cursor.scene_index:
            logger.info(f"Escena {cursor.scene_index + 1}/{self.movie.scene_count}")
        self.cursor = cursor
        self.notify()

    def _finish(self) -> None:
        self.finished = True
        self.is_playing = False
        self.strategy.stop_current()
        logger.info(f"Película terminada: {self.movie.title}")
        self.notify()
        if not self._finished_notified:
            self._finished_notified = True
            self._finished_event.set()
            if self.on_finished:
                self.on_finished()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def resume(self) -> None:
        """Arranca (o reanuda) el driver desde el paso actual."""
        if self.finished:
            return
        self.is_playing = True
        if self._driver is None or self._driver.done():
            self._driver = asyncio.ensure_future(self._drive_track() if self.external else self._drive())
        self.notify()

    def suspend(self) -> None:
        """Cancela el paso en curso conservando el cursor."""
        self.is_playing = False
        self._cancel_driver()
        self.notify()

    def reset(self) -> None:
        """Vuelve al principio sin vaciar el AudioCache."""
        self._cancel_driver()
        self.finished = False
        self._finished_notified = False
        self._finished_event.clear()
        self.preparing_audio = False

        if self.external:
            self.strategy.track.seek(0.0)
            self.track_time = 0.0
            self.cursor = Cursor(0, PRE_ROLL)
        elif self._needs_prefetch(0):
            self.cursor = Cursor(0, PRE_ROLL)
        else:
            self.cursor = Cursor(0, NARRATION)
        self.notify()

    def reenter_step(self) -> None:
        """Repite el paso actual desde el principio de la línea (cambio de audio a mitad)."""
        if not self.is_playing or self.state not in (PlaybackState.NARRATING, PlaybackState.DIALOGUE):
            return
        self._cancel_driver()
        self.resume()

    def seek(self, seconds: float) -> None:
        """Salta a un instante de la pista externa."""
        if not self.external:
            raise ValueError("seek() solo está disponible en modo external-track")
        track = self.strategy.track
        track.seek(seconds)
        if self.finished and not self.strategy.is_past_end(track.position) and not track.ended:
            self.finished = False
            self._finished_notified = False
            self._finished_event.clear()
        self.on_time_update(track.position)

    async def wait_finished(self) -> None:
        await self._finished_event.wait()

    def close(self) -> None:
        self.is_playing = False
        self._cancel_driver()
        self.strategy.close()

    def _cancel_driver(self) -> None:
        if self._driver is not None and not self._driver.done():
            self._driver.cancel()
        self._driver = None
        self.strategy.stop_current()

    async def _drive(self) -> None:
        me = asyncio.current_task()
        while self.is_playing and not self.finished and self._driver is me:
            try:
                await self._perform_step()
            except asyncio.CancelledError:
                raise
            except Exception:
                # El fallo de un paso no detiene la película
                logger.exception(f"Error inesperado en el paso {self.cursor}")
            if self._driver is not me:
                return
            self.advance()

    async def _drive_track(self) -> None:
        me = asyncio.current_task()
        track = self.strategy.track
        track.set_muted(not self.strategy.audio_enabled)
        track.play()
        interval = self.settings.time_update_interval_ms / 1000.0
        while self.is_playing and not self.finished and self._driver is me:
            self.on_time_update(track.position)
            if self.finished:
                return
            await self._sleep(interval)

    async def _perform_step(self) -> None:
        state = self.state
        scene = self.scene
        if state == PlaybackState.PRE_ROLL:
            await self._prefetch(self.cursor.scene_index)
        elif state == PlaybackState.NARRATING:
            if scene.description:
                await self._speak(scene.description, audio_key(scene.id, NARRATOR))
        elif state == PlaybackState.DIALOGUE:
            line = scene.script[self.cursor.step]
            await self._speak(line.text, audio_key(scene.id, self.cursor.step))
        elif state == PlaybackState.SCENE_COMPLETE:
            if self.cursor.scene_index < self.movie.scene_count - 1:
                await self._prefetch(self.cursor.scene_index + 1)

    async def _speak(self, text: str, key) -> None:
        timeout = self.settings.step_timeout_seconds
        if not timeout:
            await self.strategy.speak(text, key)
            return
        try:
            await asyncio.wait_for(self.strategy.speak(text, key), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"La línea {key.scene_id}/{key.step} no terminó en {timeout}s: se continúa")
            self.strategy.stop_current()

    def _needs_prefetch(self, index: int) -> bool:
        if self.prefetcher is None or self.movie.audio_mode != AudioMode.GENERATED:
            return False
        return not self.prefetcher.is_ready(index)

    async def _prefetch(self, index: int) -> None:
        if not self._needs_prefetch(index):
            return
        self.preparing_audio = True
        self.notify()
        try:
            await self.prefetcher.prepare_scene(index)
        finally:
            self.preparing_audio = False
            self.notify()
