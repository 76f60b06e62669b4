"""Shared utilities for perftrack."""

from perftrack.utils.logging import RedactingFilter, log_timing, resolve_log_file, setup_logging

__all__ = ["RedactingFilter", "log_timing", "resolve_log_file", "setup_logging"]
