"""Database backend implementations."""
