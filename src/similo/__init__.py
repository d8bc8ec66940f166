"""Similo - local semantic search daemon for directories of text files."""

__version__ = "0.1.0"
