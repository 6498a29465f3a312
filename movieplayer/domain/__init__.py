"""Modelos de dominio."""
