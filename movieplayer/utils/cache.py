"""
Cache en disco para clips de voz sintetizados.
Evita volver a pedir al backend (con rate limit) frases que ya se generaron.
"""

import hashlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from diskcache import Cache

logger = logging.getLogger(__name__)


class SpeechClipCache:
    """Cache persistente de payloads PCM (base64) por voz y texto."""

    def __init__(self, cache_dir: str = "./cache/speech", default_ttl_hours: int = 168):
        """
        Inicializa el cache.

        Args:
            cache_dir: Directorio para almacenar el cache
            default_ttl_hours: Tiempo de vida por defecto en horas
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.cache = Cache(str(self.cache_dir))
        self.default_ttl = timedelta(hours=default_ttl_hours)

    def _generate_key(self, text: str, voice: str) -> str:
        """Genera una clave única basada en la voz y el texto."""
        digest = hashlib.sha256(f"{voice}\x00{text}".encode()).hexdigest()[:16]
        return f"speech:{digest}"

    def get(self, text: str, voice: str) -> Optional[str]:
        """
        Obtiene un clip del cache.

        Returns:
            Payload base64 o None si no existe/expiró
        """
        return self.cache.get(self._generate_key(text, voice))

    def set(self, text: str, voice: str, payload: str, ttl_hours: Optional[int] = None) -> None:
        """
        Almacena un clip en el cache.

        Args:
            text: Texto sintetizado
            voice: Voz usada
            payload: PCM en base64
            ttl_hours: Tiempo de vida en horas (usa default si no se especifica)
        """
        ttl = timedelta(hours=ttl_hours) if ttl_hours else self.default_ttl
        self.cache.set(self._generate_key(text, voice), payload, expire=ttl.total_seconds())

    def exists(self, text: str, voice: str) -> bool:
        return self._generate_key(text, voice) in self.cache

    def clear_all(self) -> None:
        """Limpia todo el cache."""
        self.cache.clear()

    def get_stats(self) -> dict:
        """Obtiene estadísticas del cache."""
        return {
            "size_bytes": self.cache.volume(),
            "items_count": len(self.cache),
            "directory": str(self.cache_dir)
        }

    def close(self) -> None:
        """Cierra la conexión al cache."""
        self.cache.close()
