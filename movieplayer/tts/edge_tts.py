"""
Backend Edge-TTS para generación de voz.
Usa voces neurales de Microsoft Edge y entrega PCM 24 kHz mono en base64,
el mismo formato que consume el reproductor.
"""

import asyncio
import io
import logging
import re
from typing import Optional

from pydub import AudioSegment

from ..audio.codec import encode_pcm, PCM_CHANNELS, PCM_SAMPLE_RATE, PCM_SAMPLE_WIDTH
from ..utils.backoff import with_retry, classify_service_error, APIError, EmptySynthesisError, RateLimitError
from ..utils.cache import SpeechClipCache

logger = logging.getLogger(__name__)

# Voces disponibles para español
SPANISH_VOICES = {
    # Colombia
    "es-CO-GonzaloNeural": "Gonzalo (Colombia, masculino)",
    "es-CO-SalomeNeural": "Salomé (Colombia, femenino)",
    # Chile
    "es-CL-LorenzoNeural": "Lorenzo (Chile, masculino)",
    "es-CL-CatalinaNeural": "Catalina (Chile, femenino)",
    # México
    "es-MX-JorgeNeural": "Jorge (México, masculino)",
    "es-MX-DaliaNeural": "Dalia (México, femenino)",
    # España
    "es-ES-AlvaroNeural": "Álvaro (España, masculino)",
    "es-ES-ElviraNeural": "Elvira (España, femenino)",
}

DEFAULT_VOICE = "es-MX-JorgeNeural"


def clean_text_for_tts(text: str) -> str:
    """
    Limpia texto para síntesis TTS, removiendo elementos problemáticos.
    """
    # Acotaciones de guión: (pausa), [risa]
    text = re.sub(r'\[.*?\]', '', text)
    text = re.sub(r'\(.*?\)', '', text)

    # URLs
    text = re.sub(r'https?://\S+', '', text)

    # Caracteres especiales
    text = re.sub(r'[*_~`|<>{}\\]', '', text)

    # Normalizar espacios y puntuación
    text = re.sub(r'\s+', ' ', text)
    text = re.sub(r'[.]{4,}', '...', text)
    text = re.sub(r'[!]{2,}', '!', text)
    text = re.sub(r'[?]{2,}', '?', text)

    return text.strip()


async def stream_mp3(text: str, voice: str, rate: str = "+0%", pitch: str = "+0Hz") -> bytes:
    """
    Sintetiza texto con Edge-TTS y devuelve el mp3 completo.

    Raises:
        RateLimitError: Si el servicio responde 429
        EmptySynthesisError: Si no llegó audio
        APIError: Para el resto de errores del servicio
    """
    import edge_tts

    communicate = edge_tts.Communicate(text=text, voice=voice, rate=rate, pitch=pitch)
    data = bytearray()
    try:
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                data.extend(chunk["data"])
    except edge_tts.exceptions.NoAudioReceived as e:
        raise EmptySynthesisError(str(e)) from e
    except Exception as e:
        raise classify_service_error(e, voice) from e

    if not data:
        raise EmptySynthesisError(f"Edge-TTS no devolvió audio para la voz {voice}")
    return bytes(data)


def mp3_to_segment(data: bytes) -> AudioSegment:
    return AudioSegment.from_file(io.BytesIO(data), format="mp3")


class EdgeSpeechBackend:
    """Función de síntesis (texto, voz) -> PCM base64 | None sobre Edge-TTS."""

    def __init__(
        self,
        rate: str = "+0%",
        pitch: str = "+0Hz",
        clip_cache: Optional[SpeechClipCache] = None,
        sample_rate: int = PCM_SAMPLE_RATE,
        channels: int = PCM_CHANNELS,
        sample_width: int = PCM_SAMPLE_WIDTH,
    ):
        """
        Inicializa el backend.

        Args:
            rate: Velocidad del habla (ej: "+10%", "-5%")
            pitch: Tono de voz (ej: "+5Hz", "-10Hz")
            clip_cache: Cache persistente opcional de clips ya sintetizados
        """
        self.rate = rate
        self.pitch = pitch
        self.clip_cache = clip_cache
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width

    @with_retry(max_attempts=3, min_wait=1.5, max_wait=10.0, exceptions=(RateLimitError,))
    async def _synthesize_pcm(self, text: str, voice: str) -> str:
        mp3 = await stream_mp3(text, voice, self.rate, self.pitch)
        segment = await asyncio.to_thread(mp3_to_segment, mp3)
        return encode_pcm(segment, self.sample_rate, self.channels, self.sample_width)

    async def synthesize(self, text: str, voice: str) -> Optional[str]:
        """
        Sintetiza una línea.

        Args:
            text: Texto a sintetizar
            voice: Voz a usar (ej: es-CO-GonzaloNeural)

        Returns:
            PCM en base64, o None si no hubo audio (nunca es fatal)
        """
        text = clean_text_for_tts(text)
        if not text:
            logger.warning("Texto vacío después de limpieza")
            return None

        if self.clip_cache:
            cached = self.clip_cache.get(text, voice)
            if cached:
                logger.debug(f"Clip en cache para {voice}: {text[:40]}")
                return cached

        try:
            payload = await self._synthesize_pcm(text, voice)
        except APIError as e:
            logger.warning(f"Síntesis no disponible ({voice}): {e}")
            return None
        except Exception as e:
            # ffmpeg ausente o mp3 corrupto
            logger.warning(f"No se pudo convertir el audio de Edge-TTS: {e}")
            return None

        if self.clip_cache:
            self.clip_cache.set(text, voice, payload)
        return payload

    @staticmethod
    def list_voices() -> dict:
        """Retorna las voces disponibles en español."""
        return SPANISH_VOICES
