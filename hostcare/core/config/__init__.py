"""Configuration loading (hostcare.yml)."""
