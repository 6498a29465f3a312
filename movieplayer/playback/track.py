"""
Pista de audio externa (modo external-track).
El reloj de la pista dicta qué escena está activa; el secuenciador la muestrea
periódicamente con su posición actual.
"""
import logging
import time
from typing import Callable, Optional

from pydub import AudioSegment

from ..audio.channel import NullSink

logger = logging.getLogger(__name__)


class ExternalTrack:
    """Reproducción de la pista subida por el usuario con posición en segundos."""

    def __init__(
        self,
        segment: Optional[AudioSegment] = None,
        duration: Optional[float] = None,
        sink=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            segment: Pista decodificada (puede faltar: solo se usa el reloj)
            duration: Duración en segundos (se toma del segmento si no se indica)
            sink: Salida real de audio
            clock: Reloj monotónico en segundos
        """
        self.segment = segment
        if duration is None and segment is not None:
            duration = len(segment) / 1000.0
        self.duration = duration
        self.sink = sink or NullSink()
        self._clock = clock
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self.muted = False

    @property
    def playing(self) -> bool:
        return self._started_at is not None

    @property
    def position(self) -> float:
        position = self._offset
        if self._started_at is not None:
            position += self._clock() - self._started_at
        if self.duration is not None:
            position = min(position, self.duration)
        return position

    @property
    def ended(self) -> bool:
        """True cuando la pista llegó a su final (evento 'ended')."""
        return self.duration is not None and self.position >= self.duration

    def play(self) -> None:
        if self.playing:
            return
        self._started_at = self._clock()
        self._start_sink()

    def pause(self) -> None:
        if not self.playing:
            return
        self._offset = self.position
        self._started_at = None
        self.sink.stop()

    def seek(self, seconds: float) -> None:
        """Mueve la pista a un instante (acotado a [0, duración])."""
        seconds = max(0.0, seconds)
        if self.duration is not None:
            seconds = min(seconds, self.duration)
        was_playing = self.playing
        if was_playing:
            self.sink.stop()
        self._offset = seconds
        self._started_at = self._clock() if was_playing else None
        if was_playing:
            self._start_sink()

    def set_muted(self, muted: bool) -> None:
        self.muted = muted
        if muted:
            self.sink.stop()
        elif self.playing:
            self._start_sink()

    def close(self) -> None:
        self.pause()
        self.sink.stop()

    def _start_sink(self) -> None:
        if self.muted or self.segment is None:
            return
        self.sink.start(self.segment[int(self.position * 1000):])
