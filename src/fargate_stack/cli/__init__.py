"""Command line interface for fstack."""
