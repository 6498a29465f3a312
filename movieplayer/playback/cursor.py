"""
Cursor de reproducción: (scene_index, step).
Es todo el estado mutable del secuenciador; lo demás se deriva.
"""
from dataclasses import dataclass
from enum import Enum

from ..domain.models import Scene

# Valores especiales de step; 0..n-1 son líneas de diálogo y n (o más) es fin de escena
TRACKING = -3
PRE_ROLL = -2
NARRATION = -1


class PlaybackState(str, Enum):
    PRE_ROLL = "pre-roll"
    NARRATING = "narrating"
    DIALOGUE = "dialogue"
    SCENE_COMPLETE = "scene-complete"
    TRACKING = "tracking"
    FINISHED = "finished"


@dataclass(frozen=True)
class Cursor:
    scene_index: int = 0
    step: int = PRE_ROLL

    def state(self, scene: Scene) -> PlaybackState:
        if self.step == PRE_ROLL:
            return PlaybackState.PRE_ROLL
        if self.step == TRACKING:
            return PlaybackState.TRACKING
        if self.step == NARRATION:
            return PlaybackState.NARRATING
        if self.step < scene.line_count:
            return PlaybackState.DIALOGUE
        return PlaybackState.SCENE_COMPLETE

    def with_step(self, step: int) -> "Cursor":
        return Cursor(self.scene_index, step)
