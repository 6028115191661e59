"""Database helpers and session management."""
