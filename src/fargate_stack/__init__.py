"""Declarative Fargate stack composition with load balancer routing plans."""

from fargate_stack.__version__ import __version__

__all__ = ["__version__"]
