"""Stowage: packaging-element graph engine for deployable artifacts."""

__version__ = "0.4.0"
