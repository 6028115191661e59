"""Business logic services for the Vecinu application."""
