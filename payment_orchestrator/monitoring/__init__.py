"""Monitoring and observability package."""
from .logging import get_logger, setup_logging
from .metrics import metrics

__all__ = ["get_logger", "metrics", "setup_logging"]
