"""Version information for fargate_stack."""

__version__ = "0.3.0"
