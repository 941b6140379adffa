"""Hydra — streaming chat client for a remote language-model endpoint."""

__version__ = "0.1.0"
