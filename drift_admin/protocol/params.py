"""
Market creation parameter tables and local sanity checks.

Values are precision-scaled integers passed through to the program as-is.
validate() only rejects what is clearly out of range before a transaction is
built; economic soundness stays the program's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from driftpy.constants.numeric_constants import BASE_PRECISION, PEG_PRECISION, PRICE_PRECISION
from driftpy.types import AssetTier, ContractTier, OracleSource
from solders.pubkey import Pubkey

from drift_admin.core.exceptions import ValidationError

# Program-side precisions not exported by the SDK constants module
SPOT_MARKET_WEIGHT_PRECISION = 10_000
SPOT_MARKET_RATE_PRECISION = 1_000_000
SPOT_MARKET_UTILIZATION_PRECISION = 1_000_000
MARGIN_PRECISION = 10_000
LIQUIDATION_FEE_PRECISION = 1_000_000
MAX_NAME_BYTES = 32
U8_MAX = 255
U32_MAX = 2**32 - 1

QUOTE_SPOT_MARKET_INDEX = 0
QUOTE_MINT_DECIMALS = 6
# Devnet SOL/USD pull oracle
DEFAULT_PERP_ORACLE = "FgBGHNex4urrBmNbSj8ntNQDGqeHcWewKtkvL6JE6dEX"


def _variant(enum_cls: Any, name: str, field_name: str) -> Any:
    """
    Instantiate a driftpy sumtype variant by name, ignoring case.

    driftpy spells variants differently per type (AssetTier.COLLATERAL,
    OracleSource.PythPull), so "collateral" and "pythpull" are accepted too.
    """
    wanted = name.strip().lower() if isinstance(name, str) else ""
    for variant_name in getattr(enum_cls, "_sumtype_constructor_names", ()):
        if variant_name.lower() == wanted:
            return getattr(enum_cls, variant_name)()
    raise ValidationError(f"Unknown {field_name} {name!r}", field=field_name, value=name)


def _check_name(name: str) -> None:
    if len(name.encode("utf-8")) > MAX_NAME_BYTES:
        raise ValidationError(f"Market name must fit {MAX_NAME_BYTES} bytes: {name!r}", field="name", value=name)


def _check_range(field_name: str, value: int, low: int, high: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer, got {value!r}", field=field_name, value=value)
    if value < low or value > high:
        raise ValidationError(
            f"{field_name}={value} is outside [{low}, {high}]",
            field=field_name,
            value=value,
        )


@dataclass
class SpotMarketParams:
    """Spot market creation. Defaults describe a USDC quote market (index 0)."""

    mint: Pubkey
    oracle: Pubkey = field(default_factory=Pubkey.default)
    oracle_source: str = "QuoteAsset"
    optimal_utilization: int = SPOT_MARKET_UTILIZATION_PRECISION * 8 // 10
    optimal_rate: int = SPOT_MARKET_RATE_PRECISION // 10
    max_rate: int = SPOT_MARKET_RATE_PRECISION * 2 // 10
    initial_asset_weight: int = SPOT_MARKET_WEIGHT_PRECISION
    maintenance_asset_weight: int = SPOT_MARKET_WEIGHT_PRECISION
    initial_liability_weight: int = SPOT_MARKET_WEIGHT_PRECISION
    maintenance_liability_weight: int = SPOT_MARKET_WEIGHT_PRECISION
    imf_factor: int = 0
    liquidator_fee: int = 0
    if_liquidation_fee: int = 0
    active_status: bool = True
    asset_tier: str = "COLLATERAL"
    scale_initial_asset_weight_start: int = 0
    withdraw_guard_threshold: int = 0
    order_tick_size: int = PRICE_PRECISION // 100_000
    order_step_size: int = BASE_PRECISION // 10_000
    if_total_factor: int = 0
    name: str = "USDC spot market"
    expected_decimals: int | None = QUOTE_MINT_DECIMALS

    def validate(self, market_index: int) -> None:
        for name in (
            "initial_asset_weight",
            "maintenance_asset_weight",
            "initial_liability_weight",
            "maintenance_liability_weight",
        ):
            _check_range(name, getattr(self, name), 0, SPOT_MARKET_WEIGHT_PRECISION)
        _check_range("optimal_utilization", self.optimal_utilization, 1, SPOT_MARKET_UTILIZATION_PRECISION)
        _check_range("optimal_rate", self.optimal_rate, 0, U32_MAX)
        _check_range("max_rate", self.max_rate, 0, U32_MAX)
        if self.optimal_rate > self.max_rate:
            raise ValidationError(
                f"optimal_rate ({self.optimal_rate}) cannot be greater than max_rate ({self.max_rate})",
                field="optimal_rate",
                value=self.optimal_rate,
            )
        _check_range("liquidator_fee", self.liquidator_fee, 0, LIQUIDATION_FEE_PRECISION)
        _check_range("if_liquidation_fee", self.if_liquidation_fee, 0, LIQUIDATION_FEE_PRECISION)
        if self.order_tick_size <= 0 or self.order_step_size <= 0:
            raise ValidationError("order_tick_size and order_step_size must be positive", field="order_step_size")
        _check_name(self.name)
        self.oracle_source_variant()
        self.asset_tier_variant()
        if market_index == QUOTE_SPOT_MARKET_INDEX:
            if self.oracle != Pubkey.default():
                raise ValidationError(
                    "For the quote spot market the oracle must be the default public key",
                    field="oracle",
                    value=str(self.oracle),
                )
            if self.oracle_source.strip().lower() != "quoteasset":
                raise ValidationError(
                    "For the quote spot market the oracle source must be QuoteAsset",
                    field="oracle_source",
                    value=self.oracle_source,
                )

    def oracle_source_variant(self) -> Any:
        return _variant(OracleSource, self.oracle_source, "oracle_source")

    def asset_tier_variant(self) -> Any:
        return _variant(AssetTier, self.asset_tier, "asset_tier")


@dataclass
class PerpMarketParams:
    """Perp market creation. Defaults follow the devnet prediction-market setup."""

    oracle: Pubkey = field(default_factory=lambda: Pubkey.from_string(DEFAULT_PERP_ORACLE))
    base_asset_reserve: int = 10**9
    quote_asset_reserve: int = 10**9
    periodicity: int = 3600
    peg_multiplier: int = PEG_PRECISION
    oracle_source: str = "PythPull"
    contract_tier: str = "Speculative"
    margin_ratio_initial: int = 2000
    margin_ratio_maintenance: int = 500
    liquidator_fee: int = 0
    if_liquidation_fee: int = 10_000
    imf_factor: int = 0
    active_status: bool = False
    base_spread: int = 0
    max_spread: int = 142_500
    max_open_interest: int = 0
    max_revenue_withdraw_per_period: int = 0
    quote_max_insurance: int = 0
    order_step_size: int = BASE_PRECISION // 10_000
    order_tick_size: int = PRICE_PRECISION // 100_000
    min_order_size: int = BASE_PRECISION // 10_000
    concentration_coef_scale: int = 1
    curve_update_intensity: int = 0
    amm_jit_intensity: int = 0
    name: str = "Dummy-PREDICTION-MARKET"
    prediction_market: bool = False

    def validate(self) -> None:
        _check_range("margin_ratio_initial", self.margin_ratio_initial, 1, MARGIN_PRECISION)
        _check_range("margin_ratio_maintenance", self.margin_ratio_maintenance, 1, MARGIN_PRECISION)
        if self.margin_ratio_maintenance >= self.margin_ratio_initial:
            raise ValidationError(
                f"margin_ratio_maintenance ({self.margin_ratio_maintenance}) must be below "
                f"margin_ratio_initial ({self.margin_ratio_initial})",
                field="margin_ratio_maintenance",
                value=self.margin_ratio_maintenance,
            )
        for name in ("base_asset_reserve", "quote_asset_reserve", "periodicity", "peg_multiplier"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}", field=name, value=value)
        if self.order_step_size <= 0 or self.order_tick_size <= 0:
            raise ValidationError("order_step_size and order_tick_size must be positive", field="order_step_size")
        if self.min_order_size < self.order_step_size:
            raise ValidationError(
                f"min_order_size ({self.min_order_size}) must be at least order_step_size ({self.order_step_size})",
                field="min_order_size",
                value=self.min_order_size,
            )
        _check_range("liquidator_fee", self.liquidator_fee, 0, LIQUIDATION_FEE_PRECISION)
        _check_range("if_liquidation_fee", self.if_liquidation_fee, 0, LIQUIDATION_FEE_PRECISION)
        _check_range("curve_update_intensity", self.curve_update_intensity, 0, U8_MAX)
        _check_range("amm_jit_intensity", self.amm_jit_intensity, 0, U8_MAX)
        _check_range("base_spread", self.base_spread, 0, U32_MAX)
        _check_range("max_spread", self.max_spread, self.base_spread, U32_MAX)
        _check_name(self.name)
        self.oracle_source_variant()
        self.contract_tier_variant()

    def oracle_source_variant(self) -> Any:
        return _variant(OracleSource, self.oracle_source, "oracle_source")

    def contract_tier_variant(self) -> Any:
        return _variant(ContractTier, self.contract_tier, "contract_tier")
