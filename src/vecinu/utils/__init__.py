"""Utility helpers shared across Vecinu modules."""
