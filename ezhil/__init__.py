"""Ezhil API: citizen waste reporting backend for Madurai."""

__version__ = "0.1.0"
