"""Orchid GitHub Sync - reconcile local CRDT issues with GitHub."""

__version__ = "0.1.0"
