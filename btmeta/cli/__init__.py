"""Command line interface for btmeta."""
