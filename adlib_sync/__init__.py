"""adlib-sync: mirror ad library pages into local storage and keep them in sync."""

__version__ = "0.1.0"
