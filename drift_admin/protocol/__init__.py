"""
Protocol access: program coder, instruction builders, market parameters and
the scoped client session.
"""

from drift_admin.protocol.params import PerpMarketParams, SpotMarketParams
from drift_admin.protocol.session import ProtocolSession, create_session, open_session

__all__ = [
    "PerpMarketParams",
    "ProtocolSession",
    "SpotMarketParams",
    "create_session",
    "open_session",
]
