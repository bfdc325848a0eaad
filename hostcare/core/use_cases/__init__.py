"""Use cases — one function per user-facing operation."""
