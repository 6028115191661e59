"""Core configuration, errors and logging for Vecinu."""
