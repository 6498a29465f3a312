"""
Reintentos frente al servicio de síntesis de voz.
Solo se reintenta el rate limit (429); el resto de fallos se entrega al
llamador, que sigue sin audio para esa línea.
"""

import logging
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


class APIError(Exception):
    """Fallo del servicio de síntesis."""
    pass


class RateLimitError(APIError):
    """El servicio pidió bajar el ritmo (HTTP 429)."""
    pass


class EmptySynthesisError(APIError):
    """El backend respondió sin audio."""
    pass


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 60.0,
    exceptions: tuple = (RateLimitError,),
):
    """
    Decorador de reintento con espera exponencial (sirve para corutinas).
    Al agotar los intentos relanza la última excepción tal cual.

    Args:
        max_attempts: Intentos totales, incluido el primero
        min_wait: Espera mínima entre intentos (segundos)
        max_wait: Espera máxima entre intentos (segundos)
        exceptions: Excepciones que provocan reintento
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def classify_service_error(error: Exception, context: Optional[str] = None) -> APIError:
    """
    Traduce una excepción del cliente de síntesis a la jerarquía APIError.

    Returns:
        RateLimitError para un 429, APIError para el resto
    """
    if isinstance(error, APIError):
        return error
    status = getattr(error, "status", None)
    where = f" ({context})" if context else ""
    if status == RATE_LIMIT_STATUS:
        return RateLimitError(f"Rate limit del servicio de voz{where}: {error}")
    return APIError(f"Error del servicio de voz{where}: {error}")
