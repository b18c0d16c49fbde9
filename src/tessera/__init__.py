"""Tessera: in-process caching and cache invalidation for the workspace app."""

__version__ = "0.1.0"
