"""Tests for the Herodex web application."""
