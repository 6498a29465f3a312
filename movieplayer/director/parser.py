"""
Movie Parser
Se encarga de validar y convertir el JSON del generador en objetos de dominio.
"""
import json
import logging
from typing import Any, Dict, Union

from pydantic import ValidationError

from ..domain.models import AudioMode, Movie

logger = logging.getLogger(__name__)


class MovieValidationError(ValueError):
    """La película no cumple el contrato que necesita el reproductor."""
    pass


class MovieParser:
    """Validador y parseador de películas estructuradas."""

    def parse(self, raw_input: Union[str, Dict[str, Any]]) -> Movie:
        """
        Convierte un JSON (string o dict) en un objeto Movie validado.
        """
        try:
            # 1. Normalizar entrada
            if isinstance(raw_input, str):
                # Limpiar bloques de código markdown si existen
                clean_input = raw_input.replace("```json", "").replace("```", "").strip()
                data = json.loads(clean_input)
            else:
                data = raw_input

            # 2. Validación estricta con Pydantic
            movie = Movie.model_validate(data)

        except json.JSONDecodeError as e:
            logger.error(f"Error decodificando JSON de la película: {e}")
            raise MovieValidationError("La entrada no es un JSON válido") from e
        except ValidationError as e:
            logger.error(f"Película inválida: {e}")
            raise MovieValidationError(str(e)) from e

        # 3. Validaciones de negocio adicionales
        self._validate_logic(movie)
        return movie

    def _validate_logic(self, movie: Movie):
        """Reglas de negocio extra (solo avisos, no bloquean la reproducción)."""
        if movie.audio_mode == AudioMode.EXTERNAL_TRACK:
            if not movie.custom_audio_data:
                logger.warning("Modo external-track sin pista de audio adjunta.")

            for index, scene in enumerate(movie.scenes):
                if not scene.has_interval:
                    # Dato mal formado: la escena nunca estará activa
                    logger.warning(f"Escena {scene.id} (#{index + 1}) sin start/end: se saltará en la reproducción")

            if movie.playback_end is None:
                logger.warning("La última escena no tiene end_time: la reproducción no terminará sola")

        for scene in movie.scenes:
            known = {c.id for c in scene.characters}
            for line in scene.script:
                if line.character_id not in known:
                    logger.warning(f"Escena {scene.id}: personaje desconocido '{line.character_id}'")
