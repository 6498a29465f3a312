"""Módulo de utilidades"""

from .cache import SpeechClipCache
from .backoff import with_retry, classify_service_error, APIError, RateLimitError, EmptySynthesisError

__all__ = ["SpeechClipCache", "with_retry", "classify_service_error", "APIError", "RateLimitError", "EmptySynthesisError"]
