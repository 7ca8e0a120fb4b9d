"""
Operator commands. Each takes a ProtocolSession and goes through the shared
transaction workflow.
"""

from drift_admin.operations.base import run_operation
from drift_admin.operations.check_state import check_state
from drift_admin.operations.create_mint import create_mint
from drift_admin.operations.create_perp_market import create_perp_market
from drift_admin.operations.create_spot_market import create_spot_market
from drift_admin.operations.create_user import create_user
from drift_admin.operations.initialize_program import initialize_program
from drift_admin.operations.place_order import PerpOrderRequest, place_perp_order
from drift_admin.operations.update_admin import update_admin

__all__ = [
    "PerpOrderRequest",
    "check_state",
    "create_mint",
    "create_perp_market",
    "create_spot_market",
    "create_user",
    "initialize_program",
    "place_perp_order",
    "run_operation",
    "update_admin",
]
