"""Reproductor de películas generadas: escenas, narración y diálogos sincronizados."""

from .domain.models import AudioMode, Movie, Scene, DialogueLine, Character, CharacterConfig
from .orchestrator import MoviePlayer

__all__ = ["AudioMode", "Movie", "Scene", "DialogueLine", "Character", "CharacterConfig", "MoviePlayer"]
