"""Seeded, animated sprite-field generator."""

__version__ = "0.1.0"
