"""Command-line interface for cncvm."""
