"""
Cache de audio de la sesión.
Mapea (escena, paso) a un buffer decodificado. Sin expulsión: vive lo que dura
una sesión de reproducción y está acotado por el número de líneas de la película.
"""
from typing import Dict, Iterator, NamedTuple, Optional, Union

from pydub import AudioSegment

# Centinela de la narración, distinto de cualquier índice de diálogo
NARRATOR = "narrator"


class AudioKey(NamedTuple):
    scene_id: str
    step: Union[int, str]


def audio_key(scene_id: str, step: Union[int, str]) -> AudioKey:
    """
    Clave estable para un paso de una escena.

    Args:
        scene_id: ID de la escena
        step: NARRATOR o índice de la línea de diálogo
    """
    if step != NARRATOR and not isinstance(step, int):
        raise ValueError(f"Paso inválido para la clave de audio: {step!r}")
    return AudioKey(scene_id, step)


class AudioCache:
    """Buffers listos para reproducir, indexados por AudioKey."""

    def __init__(self):
        self._buffers: Dict[AudioKey, AudioSegment] = {}

    def get(self, key: AudioKey) -> Optional[AudioSegment]:
        return self._buffers.get(key)

    def put(self, key: AudioKey, buffer: AudioSegment) -> None:
        self._buffers[key] = buffer

    def __contains__(self, key: AudioKey) -> bool:
        return key in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)

    def __iter__(self) -> Iterator[AudioKey]:
        return iter(self._buffers)

    def clear(self) -> None:
        self._buffers.clear()
