"""Small helpers shared across the web application."""
