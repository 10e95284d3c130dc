"""Shared helpers for pyOBDcore."""

from .logging import LogCallback, configure_logging, log_callback, trace

__all__ = ["LogCallback", "configure_logging", "log_callback", "trace"]
