"""Shared helpers for cncvm."""
