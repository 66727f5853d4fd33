"""Core configuration for fstack."""
