"""
Sintetizadores de voz "en vivo" para el modo on-device.
Cada línea se genera de nuevo cada vez que se reproduce; no hay cache.
"""
import asyncio
import logging
from typing import Optional

from ..audio.channel import AudioChannel
from .edge_tts import DEFAULT_VOICE, clean_text_for_tts, mp3_to_segment, stream_mp3

logger = logging.getLogger(__name__)


class SpeechSynthesisError(Exception):
    """Evento de error del sintetizador (equivale a fin de la locución)."""
    pass


class PlatformSynthesizer:
    """Contrato del sintetizador de la plataforma."""

    available = True

    async def speak(self, text: str, voice: Optional[str] = None) -> None:
        """Termina en el evento de fin de locución; lanza SpeechSynthesisError en el de error."""
        raise NotImplementedError

    def cancel(self) -> None:
        """Cancela la locución en curso."""
        raise NotImplementedError


class UnavailableSynthesizer(PlatformSynthesizer):
    """Plataforma sin síntesis de voz: cada línea se completa al instante."""

    available = False

    async def speak(self, text: str, voice: Optional[str] = None) -> None:
        return None

    def cancel(self) -> None:
        pass


class EdgeLiveSynthesizer(PlatformSynthesizer):
    """Sintetiza con Edge-TTS y reproduce por el canal compartido."""

    def __init__(
        self,
        channel: AudioChannel,
        voice: str = DEFAULT_VOICE,
        rate: str = "+0%",
        pitch: str = "+0Hz",
    ):
        self.channel = channel
        self.voice = voice
        self.rate = rate
        self.pitch = pitch

    async def speak(self, text: str, voice: Optional[str] = None) -> None:
        text = clean_text_for_tts(text)
        if not text:
            return
        try:
            mp3 = await stream_mp3(text, voice or self.voice, self.rate, self.pitch)
            segment = await asyncio.to_thread(mp3_to_segment, mp3)
        except Exception as e:
            raise SpeechSynthesisError(str(e)) from e
        await self.channel.play(segment)

    def cancel(self) -> None:
        self.channel.stop_current()
