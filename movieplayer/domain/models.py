"""
Modelos de Dominio
Definen la estructura de datos de una película generada: escenas, diálogos
y el modo de audio que gobierna la reproducción.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class AudioMode(str, Enum):
    """Estrategia de audio de toda la sesión."""
    GENERATED = "generated"
    ON_DEVICE = "on-device"
    EXTERNAL_TRACK = "external-track"


# Etiquetas antiguas que aún emite el generador
AUDIO_MODE_ALIASES = {
    "gemini": AudioMode.GENERATED,
    "browser": AudioMode.ON_DEVICE,
    "custom": AudioMode.EXTERNAL_TRACK,
}


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    SQUARE = "1:1"
    FEED = "4:5"
    CINEMA = "21:9"


class _Model(BaseModel):
    """Acepta tanto snake_case como el camelCase del JSON generado."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class Character(_Model):
    """Personaje presente en una escena (sin posición: va en la imagen)."""
    id: str
    name: str = ""


class CharacterConfig(_Model):
    """Personaje definido por el usuario antes de generar la película."""
    id: str
    name: str
    description: str = ""
    voice: Optional[str] = Field(None, description="Voz elegida explícitamente")


class DialogueLine(_Model):
    """Una réplica de un personaje dentro de una escena."""
    character_id: str
    text: str = ""
    audio_data: Optional[str] = Field(None, description="Audio pre-generado (PCM en base64)")


class Scene(_Model):
    """
    Unidad visual y narrativa de la película.
    La narración (description) se reproduce antes que los diálogos.
    """
    id: str
    duration: float = Field(5.0, description="Duración orientativa en segundos")

    # Timing (solo en modo external-track), intervalo [start, end)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    background_image_url: Optional[str] = None
    background_color: Optional[str] = None
    description: str = Field("", description="Texto narrado de la escena")
    narration_audio_data: Optional[str] = None
    characters: List[Character] = Field(default_factory=list)
    script: List[DialogueLine] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_interval(self) -> "Scene":
        if self.start_time is not None and self.end_time is not None:
            if self.end_time <= self.start_time:
                raise ValueError(
                    f"Escena {self.id}: end_time ({self.end_time}) debe ser mayor que start_time ({self.start_time})"
                )
        return self

    @property
    def line_count(self) -> int:
        return len(self.script)

    @property
    def has_interval(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def contains(self, seconds: float) -> bool:
        """True si el instante cae dentro de [start, end)."""
        if not self.has_interval:
            return False
        return self.start_time <= seconds < self.end_time

    def find_character(self, character_id: str) -> Optional[Character]:
        for character in self.characters:
            if character.id == character_id:
                return character
        return None


class Movie(_Model):
    """La película completa: metadatos más la secuencia ordenada de escenas."""
    title: str
    summary: str = ""
    style: str = "flat"
    audio_mode: AudioMode = AudioMode.GENERATED
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    custom_audio_data: Optional[str] = Field(None, description="Pista subida por el usuario (base64)")
    scenes: List[Scene]

    @field_validator("audio_mode", mode="before")
    @classmethod
    def _normalize_audio_mode(cls, value):
        if isinstance(value, str):
            return AUDIO_MODE_ALIASES.get(value.lower(), value)
        return value

    @model_validator(mode="after")
    def _check_scenes(self) -> "Movie":
        if not self.scenes:
            raise ValueError("La película necesita al menos una escena")
        seen = set()
        for scene in self.scenes:
            if scene.id in seen:
                raise ValueError(f"ID de escena duplicado: {scene.id}")
            seen.add(scene.id)
        return self

    @property
    def scene_count(self) -> int:
        return len(self.scenes)

    @property
    def total_lines(self) -> int:
        return sum(s.line_count for s in self.scenes)

    @property
    def playback_end(self) -> Optional[float]:
        """Marca de fin autoritativa en modo external-track."""
        return self.scenes[-1].end_time
