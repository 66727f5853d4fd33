"""CLI commands for fstack."""
