"""Command line interface for Orchid GitHub Sync."""
