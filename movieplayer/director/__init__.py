"""Parseo y validación de películas."""
