"""Orchestration engine — command execution, capability detection, the run loop."""
