"""Maintenance steps and the tool-output parsers they rely on."""
