"""User interaction helpers."""

from .progress import CollectionProgress, ProgressActivity

__all__ = ["CollectionProgress", "ProgressActivity"]
