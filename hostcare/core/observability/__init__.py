"""Logging setup shared by all entrypoints."""
