"""
Logging for drift_admin: module loggers plus the per-command operation tag.
"""

from drift_admin.logging.logger import bind_operation, clear_operation, get_logger

__all__ = ["bind_operation", "clear_operation", "get_logger"]
