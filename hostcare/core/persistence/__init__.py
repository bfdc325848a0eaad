"""Run history persisted next to the configuration."""
