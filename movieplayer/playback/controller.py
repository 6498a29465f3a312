"""
Controlador de reproducción: la superficie pública del reproductor.
"""
import logging
from typing import Callable

from .sequencer import Listener, PlaybackSnapshot, SceneSequencer

logger = logging.getLogger(__name__)


class PlaybackController:
    """play / pause / restart / audio / pantalla completa / seek sobre el secuenciador."""

    def __init__(self, sequencer: SceneSequencer):
        self.sequencer = sequencer

    @property
    def is_playing(self) -> bool:
        return self.sequencer.is_playing

    def play(self) -> None:
        """Reanuda desde el paso actual (la línea se repite desde el principio)."""
        if self.sequencer.finished:
            self.restart()
            return
        logger.debug(f"play en {self.sequencer.cursor}")
        self.sequencer.resume()

    def pause(self) -> None:
        """Detiene el audio en curso y conserva la posición exacta."""
        logger.debug(f"pause en {self.sequencer.cursor}")
        self.sequencer.suspend()

    def toggle_play(self) -> None:
        if self.sequencer.is_playing:
            self.pause()
        else:
            self.play()

    def restart(self) -> None:
        """Vuelve a la escena 0 (o al instante 0 de la pista) y reproduce."""
        logger.info("Reiniciando reproducción")
        self.sequencer.reset()
        self.sequencer.resume()

    def set_audio_enabled(self, enabled: bool) -> None:
        """
        Activa o desactiva el audio.
        Si hay una línea sonando se corta y se repite con el retardo estimado.
        """
        strategy = self.sequencer.strategy
        if strategy.audio_enabled == enabled:
            return
        logger.info(f"Audio {'activado' if enabled else 'desactivado'}")
        strategy.set_audio_enabled(enabled)
        if not self.sequencer.external:
            self.sequencer.reenter_step()
        self.sequencer.notify()

    def toggle_audio(self) -> None:
        self.set_audio_enabled(not self.sequencer.strategy.audio_enabled)

    def toggle_fullscreen(self) -> bool:
        """Cambia el modo de visualización ampliada del host."""
        self.sequencer.fullscreen = not self.sequencer.fullscreen
        self.sequencer.notify()
        return self.sequencer.fullscreen

    def seek(self, seconds: float) -> None:
        """Salta a un instante de la pista externa (solo modo external-track)."""
        self.sequencer.seek(seconds)

    def snapshot(self) -> PlaybackSnapshot:
        return self.sequencer.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.sequencer.subscribe(listener)

    async def wait_finished(self) -> None:
        await self.sequencer.wait_finished()

    def close(self) -> None:
        """Desmonta el reproductor: para el audio y libera el canal."""
        self.sequencer.close()
