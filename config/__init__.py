"""Configuration package. See config/settings.py."""
