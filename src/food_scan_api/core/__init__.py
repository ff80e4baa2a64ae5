"""Core configuration, errors and retry policy."""
