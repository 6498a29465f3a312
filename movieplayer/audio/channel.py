"""
Canal de salida de audio compartido.
Un único canal por sesión: empezar un buffer nuevo detiene el anterior (sin fade).
"""
import asyncio
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

from pydub import AudioSegment

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class NullSink:
    """Salida muda: la reproducción solo respeta los tiempos del buffer."""

    def start(self, segment: AudioSegment) -> None:
        pass

    def stop(self) -> None:
        pass


class FfplaySink:
    """
    Envía el buffer a ffplay (requiere ffmpeg instalado).
    El clip se vuelca a un wav temporal: ffplay lo lee a su ritmo y el bucle
    de eventos nunca espera a que vacíe una tubería.
    """

    def __init__(self, binary: str = "ffplay"):
        self.binary = shutil.which(binary)
        if not self.binary:
            logger.warning(f"{binary} no encontrado en PATH: el audio no se escuchará")
        self._process: Optional[subprocess.Popen] = None
        self._wav_path: Optional[Path] = None

    def start(self, segment: AudioSegment) -> None:
        self.stop()
        if not self.binary:
            return
        with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as f:
            segment.export(f, format="wav")
            wav_path = Path(f.name)
        self._wav_path = wav_path
        try:
            self._process = subprocess.Popen(
                [self.binary, "-nodisp", "-autoexit", "-loglevel", "quiet", str(wav_path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Error lanzando ffplay: {e}")
            self._process = None
            self._remove_wav()

    def stop(self) -> None:
        if self._process and self._process.poll() is None:
            self._process.terminate()
        self._process = None
        self._remove_wav()

    def _remove_wav(self) -> None:
        if self._wav_path is not None:
            self._wav_path.unlink(missing_ok=True)
            self._wav_path = None


class AudioChannel:
    """
    Recurso de salida exclusivo de la estrategia activa.

    play() termina cuando el buffer acaba (True) o cuando alguien llama a
    stop_current() (False). La cancelación de la tarea que espera también
    detiene la salida.
    """

    def __init__(self, sink=None, sleep: Sleep = asyncio.sleep):
        self.sink = sink or NullSink()
        self._sleep = sleep
        self._stop_event: Optional[asyncio.Event] = None
        self._token: Optional[object] = None
        self.closed = False

    @property
    def is_playing(self) -> bool:
        return self._token is not None

    async def play(self, buffer: AudioSegment) -> bool:
        """
        Reproduce un buffer hasta el final.

        Returns:
            True si terminó solo, False si fue interrumpido
        """
        if self.closed:
            logger.debug("Canal cerrado, se ignora play()")
            return False

        self.stop_current()

        token = object()
        self._token = token
        stop_event = asyncio.Event()
        self._stop_event = stop_event

        self.sink.start(buffer)
        timer = asyncio.ensure_future(self._sleep(len(buffer) / 1000.0))
        stopper = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait({timer, stopper}, return_when=asyncio.FIRST_COMPLETED)
            return timer in done and not stop_event.is_set()
        finally:
            timer.cancel()
            stopper.cancel()
            if self._token is token:
                self._token = None
                self._stop_event = None
                self.sink.stop()

    def stop_current(self) -> None:
        """Detiene lo que esté sonando en el canal."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._token is not None:
            self._token = None
            self._stop_event = None
            self.sink.stop()

    def close(self) -> None:
        """Libera el canal al salir del reproductor."""
        self.stop_current()
        self.closed = True
