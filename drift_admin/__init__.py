"""
drift_admin: administrative and operational commands for a deployed Drift v2 program.

Every command goes through one transaction workflow (build, sign, send,
confirm, verify) inside a scoped protocol session.
"""

__version__ = "0.1.0"
