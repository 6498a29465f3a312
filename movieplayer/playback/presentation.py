"""
Proyección de presentación: qué dibujar a partir del estado del secuenciador.
Función pura, sin estado propio.
"""
from dataclasses import dataclass
from typing import Optional

from ..domain.models import AudioMode, Movie
from .cursor import PlaybackState
from .sequencer import PlaybackSnapshot

GENERATING_PLACEHOLDER = "generating"
UNKNOWN_SPEAKER = "???"


@dataclass(frozen=True)
class Frame:
    scene_number: int
    scene_count: int
    progress: float
    background: str
    background_color: Optional[str]
    subtitle: Optional[str]
    speaker: Optional[str]
    bubble: Optional[str]
    preparing_audio: bool
    finished: bool


def project_frame(movie: Movie, snapshot: PlaybackSnapshot) -> Frame:
    scene = movie.scenes[snapshot.scene_index]

    subtitle = None
    speaker = None
    bubble = None

    if movie.audio_mode == AudioMode.EXTERNAL_TRACK:
        if snapshot.state == PlaybackState.TRACKING:
            # Subtítulo continuo de la escena activa
            subtitle = scene.description or " ".join(line.text for line in scene.script if line.text) or None
    elif snapshot.is_narrating:
        subtitle = scene.description or None
    elif snapshot.current_line is not None:
        line = snapshot.current_line
        character = scene.find_character(line.character_id)
        speaker = (character.name if character and character.name else None) or UNKNOWN_SPEAKER
        bubble = line.text

    return Frame(
        scene_number=snapshot.scene_index + 1,
        scene_count=snapshot.scene_count,
        progress=snapshot.scene_index / snapshot.scene_count,
        background=scene.background_image_url or GENERATING_PLACEHOLDER,
        background_color=scene.background_color,
        subtitle=subtitle,
        speaker=speaker,
        bubble=bubble,
        preparing_audio=snapshot.preparing_audio,
        finished=snapshot.finished,
    )
