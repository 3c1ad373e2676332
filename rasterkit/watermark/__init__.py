"""Watermark types, positioning and compositing."""
