"""Geometric engines, filters, chain and batch execution."""
