"""
Place a perp order from the signer's user account.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from driftpy.types import MarketType, OrderParams, OrderType, PositionDirection

from drift_admin.core.exceptions import AccountNotFoundError, ValidationError
from drift_admin.logging import get_logger
from drift_admin.protocol.params import QUOTE_SPOT_MARKET_INDEX
from drift_admin.protocol.session import ProtocolSession
from drift_admin.workflow.runner import WorkflowResult

logger = get_logger(__name__)

DIRECTIONS = ("Long", "Short")
ORDER_TYPES = ("Market", "Limit")


@dataclass
class PerpOrderRequest:
    market_index: int = 1
    direction: str = "Long"
    order_type: str = "Market"
    base_asset_amount: int = 1_000_000
    price: int = 0
    reduce_only: bool = False
    user_order_id: int = 0
    max_ts_offset_sec: int = 60
    sub_account_id: int = 0

    def validate(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValidationError(f"direction must be one of {DIRECTIONS}", field="direction", value=self.direction)
        if self.order_type not in ORDER_TYPES:
            raise ValidationError(f"order_type must be one of {ORDER_TYPES}", field="order_type", value=self.order_type)
        if self.base_asset_amount <= 0:
            raise ValidationError(
                "base_asset_amount must be positive",
                field="base_asset_amount",
                value=self.base_asset_amount,
            )
        if self.order_type == "Limit" and self.price <= 0:
            raise ValidationError("Limit orders need a positive price", field="price", value=self.price)
        if self.price < 0:
            raise ValidationError("price cannot be negative", field="price", value=self.price)

    def to_order_params(self, now: float | None = None) -> OrderParams:
        now = time.time() if now is None else now
        return OrderParams(
            order_type=getattr(OrderType, self.order_type)(),
            base_asset_amount=self.base_asset_amount,
            market_index=self.market_index,
            direction=getattr(PositionDirection, self.direction)(),
            user_order_id=self.user_order_id,
            price=self.price,
            reduce_only=self.reduce_only,
            max_ts=int(now) + self.max_ts_offset_sec,
            market_type=MarketType.Perp(),
        )


async def place_perp_order(session: ProtocolSession, request: PerpOrderRequest) -> WorkflowResult:
    request.validate()
    builder = session.instructions
    user = await session.fetch_user(request.sub_account_id)
    if user is None:
        raise AccountNotFoundError(
            "User account not found; run create-user first",
            address=str(builder.user_public_key(request.sub_account_id)),
        )
    perp_market = await session.fetch_perp_market(request.market_index)
    if perp_market is None:
        raise AccountNotFoundError(f"Perp market {request.market_index} not found")
    if await session.fetch_spot_market(QUOTE_SPOT_MARKET_INDEX) is None:
        raise AccountNotFoundError(f"Quote spot market {QUOTE_SPOT_MARKET_INDEX} not found")

    min_order_size = perp_market.amm.min_order_size
    if request.base_asset_amount < min_order_size:
        raise ValidationError(
            f"base_asset_amount {request.base_asset_amount} is below the market minimum {min_order_size}",
            field="base_asset_amount",
            value=request.base_asset_amount,
        )

    logger.info(
        "perp_order_placing",
        market_index=request.market_index,
        direction=request.direction,
        order_type=request.order_type,
        base_asset_amount=request.base_asset_amount,
        price=request.price,
    )
    ix = builder.place_perp_order(
        request.to_order_params(),
        oracle=perp_market.amm.oracle,
        quote_spot_market_index=QUOTE_SPOT_MARKET_INDEX,
        sub_account_id=request.sub_account_id,
    )
    result = await session.workflow.execute([ix], label="place_perp_order")
    result.extra.update(market_index=request.market_index, direction=request.direction)
    logger.info("perp_order_placed", signature=result.signature)
    return result
