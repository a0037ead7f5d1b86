"""Utility functions for sitedeploy."""

from sitedeploy.utils.logging import configure_logging, deployment_context, get_logger

__all__ = [
    "configure_logging",
    "deployment_context",
    "get_logger",
]
