"""Vecinu: neighborhood-scoped social feed with moderation."""

__version__ = "0.1.0"
