"""Síntesis de voz: backend Edge-TTS y sintetizadores en vivo."""
