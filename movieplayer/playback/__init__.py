"""
Motor de reproducción.

Componentes:
- SceneSequencer: máquina de estados sobre el cursor (escena, paso)
- Estrategias de audio: clips pre-generados, síntesis en vivo, pista externa
- PlaybackController: play / pause / restart / audio / seek
- project_frame: qué dibujar en cada momento
"""

from .controller import PlaybackController
from .cursor import Cursor, PlaybackState
from .presentation import Frame, project_frame
from .sequencer import PlaybackSnapshot, SceneSequencer
from .strategies import (
    AudioSourceStrategy,
    ClipLookupStrategy,
    ExternalTrackStrategy,
    OnDeviceSpeechStrategy,
    create_strategy,
)
from .voices import VoiceAssignment, assign_voices, guess_voice

__all__ = [
    "PlaybackController", "Cursor", "PlaybackState", "Frame", "project_frame",
    "PlaybackSnapshot", "SceneSequencer", "AudioSourceStrategy", "ClipLookupStrategy",
    "ExternalTrackStrategy", "OnDeviceSpeechStrategy", "create_strategy",
    "VoiceAssignment", "assign_voices", "guess_voice",
]
