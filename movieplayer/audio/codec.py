"""
Decodificación de audio.
El backend de síntesis entrega PCM crudo (24 kHz, mono, 16 bits little-endian)
codificado en base64; la pista personalizada llega como archivo completo.
"""
import base64
import binascii
import io
import logging
from typing import Optional

from pydub import AudioSegment

logger = logging.getLogger(__name__)

PCM_SAMPLE_RATE = 24000
PCM_CHANNELS = 1
PCM_SAMPLE_WIDTH = 2


class AudioDecodeError(ValueError):
    """Payload de audio mal formado."""
    pass


def decode_pcm(
    payload: str,
    sample_rate: int = PCM_SAMPLE_RATE,
    channels: int = PCM_CHANNELS,
    sample_width: int = PCM_SAMPLE_WIDTH,
) -> AudioSegment:
    """
    Convierte un payload base64 de PCM en un buffer listo para reproducir.

    Args:
        payload: PCM en base64
        sample_rate: Frecuencia de muestreo
        channels: Número de canales
        sample_width: Bytes por muestra

    Returns:
        AudioSegment decodificado

    Raises:
        AudioDecodeError: Si el base64 es inválido o los bytes no forman frames completos
    """
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise AudioDecodeError(f"Base64 inválido: {e}") from e

    frame_width = sample_width * channels
    if not raw or len(raw) % frame_width:
        raise AudioDecodeError(f"PCM incompleto: {len(raw)} bytes no es múltiplo de {frame_width}")

    return AudioSegment(
        data=raw,
        sample_width=sample_width,
        frame_rate=sample_rate,
        channels=channels,
    )


def encode_pcm(
    segment: AudioSegment,
    sample_rate: int = PCM_SAMPLE_RATE,
    channels: int = PCM_CHANNELS,
    sample_width: int = PCM_SAMPLE_WIDTH,
) -> str:
    """Normaliza un segmento al formato del backend y lo devuelve en base64."""
    normalized = (
        segment.set_frame_rate(sample_rate)
        .set_channels(channels)
        .set_sample_width(sample_width)
    )
    return base64.b64encode(normalized.raw_data).decode("ascii")


def decode_track(payload: str, format: Optional[str] = None) -> AudioSegment:
    """
    Decodifica la pista subida por el usuario (mp3, wav, ...).

    Raises:
        AudioDecodeError: Si no se puede leer el archivo
    """
    # Admite data URLs ("data:audio/mpeg;base64,...")
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]

    try:
        raw = base64.b64decode(payload, validate=True)
        return AudioSegment.from_file(io.BytesIO(raw), format=format)
    except (binascii.Error, ValueError, TypeError) as e:
        raise AudioDecodeError(f"Base64 inválido en la pista: {e}") from e
    except Exception as e:
        # pydub propaga los errores de ffmpeg como CouldntDecodeError u OSError
        logger.error(f"No se pudo decodificar la pista externa: {e}")
        raise AudioDecodeError(str(e)) from e


def duration_seconds(segment: AudioSegment) -> float:
    return len(segment) / 1000.0
