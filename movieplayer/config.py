"""
Configuración del reproductor.
Se lee de config/config.yaml y se puede sobreescribir con variables de entorno (.env).
"""
import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


class VoiceCatalog(BaseModel):
    """Voces disponibles para el reparto."""
    narrator: str = "es-ES-AlvaroNeural"
    male: List[str] = Field(default_factory=lambda: [
        "es-CO-GonzaloNeural",
        "es-CL-LorenzoNeural",
        "es-MX-JorgeNeural",
    ])
    female: List[str] = Field(default_factory=lambda: [
        "es-CO-SalomeNeural",
        "es-MX-DaliaNeural",
    ])
    # Voz para réplicas de personajes sin asignación
    fallback: str = "es-MX-JorgeNeural"


class PlaybackSettings(BaseModel):
    """Tiempos y parámetros de la sesión de reproducción."""
    # Retardo sintético cuando no hay audio
    min_fallback_ms: int = 2000
    ms_per_char: int = 60
    # Pausa tras cada clip para no cortar la cadencia
    inter_line_pause_ms: int = 500

    # Backpressure del prefetch contra el backend de síntesis
    narration_fetch_delay_ms: int = 500
    line_fetch_delay_ms: int = 800

    # PCM entregado por el backend
    sample_rate: int = 24000
    channels: int = 1
    sample_width: int = 2

    # Muestreo de la pista externa
    time_update_interval_ms: int = 250

    # None = sin timeout (un onComplete que nunca llega detiene la película)
    step_timeout_seconds: Optional[float] = None

    voices: VoiceCatalog = Field(default_factory=VoiceCatalog)

    # Edge-TTS
    tts_rate: str = "+0%"
    tts_pitch: str = "+0Hz"
    speech_cache_dir: Optional[str] = None
    speech_cache_ttl_hours: int = 168


def load_settings(path: Optional[str] = None) -> PlaybackSettings:
    """
    Carga la configuración del reproductor.

    Args:
        path: Ruta al YAML (usa MOVIEPLAYER_CONFIG o config/config.yaml si no se indica)

    Returns:
        PlaybackSettings validado
    """
    config_path = Path(path or os.getenv("MOVIEPLAYER_CONFIG", DEFAULT_CONFIG_PATH))
    data = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.info(f"Archivo de configuración no encontrado: {config_path}. Usando valores por defecto")

    playback = dict(data.get("playback", data))

    # Variables de entorno
    narrator = os.getenv("TTS_NARRATOR_VOICE")
    if narrator:
        playback.setdefault("voices", {})
        playback["voices"] = {**playback["voices"], "narrator": narrator}

    cache_dir = os.getenv("SPEECH_CACHE_DIR")
    if cache_dir:
        playback["speech_cache_dir"] = cache_dir

    timeout = os.getenv("PLAYBACK_STEP_TIMEOUT")
    if timeout:
        playback["step_timeout_seconds"] = float(timeout)

    return PlaybackSettings.model_validate(playback)


def estimate_speech_ms(text: str, settings: PlaybackSettings) -> int:
    """Duración estimada de una línea a partir de su longitud (con piso)."""
    return max(settings.min_fallback_ms, len(text or "") * settings.ms_per_char)
