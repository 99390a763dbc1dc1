"""Collaborative question answering on academic documents."""

__version__ = "0.1.0"
