"""Fono chat backend: encrypted message store with realtime fan-out."""

__version__ = "1.0.0"
