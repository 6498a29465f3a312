"""
Asignación de voces al reparto.

Las voces explícitas del usuario tienen prioridad. Al resto de personajes se les
adivina una voz por la terminación del nombre (heurística de género gramatical
pensada para nombres rusos y españoles; en otros idiomas se equivoca) y se elige
al azar dentro del grupo masculino o femenino. El narrador siempre usa la voz fija
del catálogo. Una voz asignada no cambia durante la vida de la película.
"""
import logging
import random
from typing import Callable, Dict, Iterable, Iterator, Optional

from ..config import VoiceCatalog
from ..domain.models import CharacterConfig, Movie

logger = logging.getLogger(__name__)

NARRATOR_KEY = "narrator"

FEMININE_ENDINGS = ("а", "я", "a", "ya")

VoicePolicy = Callable[[str], str]


def guess_voice(name: str, catalog: VoiceCatalog, rng: Optional[random.Random] = None) -> str:
    """
    Adivina una voz a partir del nombre del personaje.

    Args:
        name: Nombre visible del personaje
        catalog: Grupos de voces masculinas y femeninas
        rng: Generador aleatorio (para elegir dentro del grupo)
    """
    rng = rng or random.Random()
    if not name:
        return catalog.male[0]
    lower = name.strip().lower()
    if lower.endswith(FEMININE_ENDINGS):
        return rng.choice(catalog.female)
    return rng.choice(catalog.male)


class VoiceAssignment:
    """Mapa estable personaje -> voz (más la clave reservada 'narrator')."""

    def __init__(self, catalog: VoiceCatalog, policy: Optional[VoicePolicy] = None):
        self.catalog = catalog
        self.policy = policy or (lambda name: guess_voice(name, catalog))
        self._voices: Dict[str, str] = {NARRATOR_KEY: catalog.narrator}

    @property
    def narrator(self) -> str:
        return self._voices[NARRATOR_KEY]

    def get(self, character_id: str, default: Optional[str] = None) -> Optional[str]:
        return self._voices.get(character_id, default)

    def voice_for(self, character_id: str) -> str:
        """Voz de un personaje, o la de reserva si no tiene asignación."""
        return self._voices.get(character_id, self.catalog.fallback)

    def assign(self, character_id: str, voice: str) -> str:
        """Asigna una voz si el personaje aún no tiene. Devuelve la voz vigente."""
        current = self._voices.get(character_id)
        if current is not None:
            if current != voice:
                logger.debug(f"Voz de '{character_id}' ya asignada ({current}), se ignora {voice}")
            return current
        self._voices[character_id] = voice
        return voice

    def apply_configs(self, configs: Iterable[CharacterConfig]) -> None:
        for config in configs:
            if config.voice:
                self.assign(config.id, config.voice)

    def extend(self, movie: Movie) -> None:
        """Asigna voz a los personajes nuevos (p. ej. tras pasar por el editor)."""
        for scene in movie.scenes:
            for character in scene.characters:
                if character.id in self._voices:
                    continue
                voice = self.assign(character.id, self.policy(character.name))
                logger.debug(f"Voz adivinada para {character.name or character.id}: {voice}")

    def as_dict(self) -> Dict[str, str]:
        return dict(self._voices)

    def __contains__(self, character_id: str) -> bool:
        return character_id in self._voices

    def __iter__(self) -> Iterator[str]:
        return iter(self._voices)

    def __len__(self) -> int:
        return len(self._voices)


def assign_voices(
    movie: Movie,
    configs: Iterable[CharacterConfig] = (),
    catalog: Optional[VoiceCatalog] = None,
    rng: Optional[random.Random] = None,
) -> VoiceAssignment:
    """
    Construye el mapa de voces de una película.

    Args:
        movie: Película generada
        configs: Reparto definido por el usuario (voces explícitas)
        catalog: Catálogo de voces (usa el de por defecto si no se indica)
        rng: Generador aleatorio para la elección dentro de cada grupo

    Returns:
        VoiceAssignment con todos los personajes y el narrador
    """
    catalog = catalog or VoiceCatalog()
    rng = rng or random.Random()
    voices = VoiceAssignment(catalog, policy=lambda name: guess_voice(name, catalog, rng))
    voices.apply_configs(configs)
    voices.extend(movie)
    logger.info(f"Voces asignadas: {len(voices) - 1} personajes + narrador ({voices.narrator})")
    return voices
