"""
Configuration management for operator commands.

Loads and validates settings from environment variables and optional .env
files. Exposes a single settings object per invocation.
"""

from drift_admin.config.settings import OperatorSettings, get_settings, parse_pubkey  # noqa: F401

__all__ = ["OperatorSettings", "get_settings", "parse_pubkey"]
