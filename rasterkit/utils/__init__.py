"""Logging, configuration and pixel-mode helpers."""
