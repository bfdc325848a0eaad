"""CLI sub-command groups, registered by ``hostcare.main``."""
