"""Herodex: browse, search, and favorite superheroes."""

__version__ = "0.1.0"
