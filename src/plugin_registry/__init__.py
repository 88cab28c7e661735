"""Vite / Rollup / Rolldown plugin registry collector."""

__version__ = "0.1.0"
