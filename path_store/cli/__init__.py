"""Command-line interface for path-store."""
