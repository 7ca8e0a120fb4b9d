"""
Instruction construction for the protocol program.

Encoding is delegated to anchorpy using the IDL shipped with driftpy, bound to
whatever program id the operator configured (devnet forks included). Account
addresses come from driftpy's PDA helpers. This module only fills in accounts
and arguments; it never sends anything.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import driftpy
from anchorpy.program.context import Context
from anchorpy.program.core import Program
from anchorpy.provider import Provider, Wallet
from anchorpy_core.idl import Idl
from driftpy.addresses import (
    get_drift_client_signer_public_key,
    get_insurance_fund_vault_public_key,
    get_perp_market_public_key,
    get_spot_market_public_key,
    get_spot_market_vault_public_key,
    get_state_public_key,
    get_user_account_public_key,
    get_user_stats_account_public_key,
)
from driftpy.name import encode_name
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID
from solders.sysvar import RENT
from spl.token.constants import TOKEN_PROGRAM_ID

from drift_admin.protocol.params import PerpMarketParams, SpotMarketParams

DEFAULT_USER_NAME = "Main Account"


def load_drift_idl() -> Idl:
    """Read the program IDL bundled with the driftpy distribution."""
    file = Path(str(next(iter(driftpy.__path__)))) / "idl" / "drift.json"
    return Idl.from_json(file.read_text())


def build_program(connection: Any, program_id: Pubkey, commitment: str = "confirmed") -> Program:
    """
    anchorpy Program used only as instruction / account coder. The provider wallet
    is a dummy: signing always goes through the workflow's Signer.
    """
    opts = TxOpts(preflight_commitment=Commitment(commitment))
    provider = Provider(connection, Wallet.dummy(), opts)
    return Program(load_drift_idl(), program_id, provider)


def readable(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


class DriftInstructionBuilder:
    """Builds protocol instructions for one program id and one authority (the signer)."""

    def __init__(self, program: Program, authority: Pubkey) -> None:
        self._program = program
        self._authority = authority

    @property
    def program_id(self) -> Pubkey:
        return self._program.program_id

    @property
    def authority(self) -> Pubkey:
        return self._authority

    def state_public_key(self) -> Pubkey:
        return get_state_public_key(self.program_id)

    def signer_public_key(self) -> Pubkey:
        return get_drift_client_signer_public_key(self.program_id)

    def _ix(self, name: str, *args: Any, accounts: dict[str, Pubkey], remaining: Sequence[AccountMeta] = ()) -> Instruction:
        return self._program.instruction[name](
            *args,
            ctx=Context(accounts=accounts, remaining_accounts=list(remaining)),
        )

    # admin

    def initialize(self, quote_asset_mint: Pubkey) -> Instruction:
        return self._ix(
            "initialize",
            accounts={
                "admin": self._authority,
                "state": self.state_public_key(),
                "quote_asset_mint": quote_asset_mint,
                "drift_signer": self.signer_public_key(),
                "rent": RENT,
                "system_program": SYS_PROGRAM_ID,
                "token_program": TOKEN_PROGRAM_ID,
            },
        )

    def update_admin(self, new_admin: Pubkey) -> Instruction:
        return self._ix(
            "update_admin",
            new_admin,
            accounts={"admin": self._authority, "state": self.state_public_key()},
        )

    def initialize_spot_market(self, params: SpotMarketParams, market_index: int) -> Instruction:
        return self._ix(
            "initialize_spot_market",
            params.optimal_utilization,
            params.optimal_rate,
            params.max_rate,
            params.oracle_source_variant(),
            params.initial_asset_weight,
            params.maintenance_asset_weight,
            params.initial_liability_weight,
            params.maintenance_liability_weight,
            params.imf_factor,
            params.liquidator_fee,
            params.if_liquidation_fee,
            params.active_status,
            params.asset_tier_variant(),
            params.scale_initial_asset_weight_start,
            params.withdraw_guard_threshold,
            params.order_tick_size,
            params.order_step_size,
            params.if_total_factor,
            encode_name(params.name),
            accounts={
                "spot_market": get_spot_market_public_key(self.program_id, market_index),
                "spot_market_mint": params.mint,
                "spot_market_vault": get_spot_market_vault_public_key(self.program_id, market_index),
                "insurance_fund_vault": get_insurance_fund_vault_public_key(self.program_id, market_index),
                "drift_signer": self.signer_public_key(),
                "state": self.state_public_key(),
                "oracle": params.oracle,
                "admin": self._authority,
                "rent": RENT,
                "system_program": SYS_PROGRAM_ID,
                "token_program": TOKEN_PROGRAM_ID,
            },
        )

    def initialize_perp_market(self, params: PerpMarketParams, market_index: int) -> Instruction:
        return self._ix(
            "initialize_perp_market",
            market_index,
            params.base_asset_reserve,
            params.quote_asset_reserve,
            params.periodicity,
            params.peg_multiplier,
            params.oracle_source_variant(),
            params.contract_tier_variant(),
            params.margin_ratio_initial,
            params.margin_ratio_maintenance,
            params.liquidator_fee,
            params.if_liquidation_fee,
            params.imf_factor,
            params.active_status,
            params.base_spread,
            params.max_spread,
            params.max_open_interest,
            params.max_revenue_withdraw_per_period,
            params.quote_max_insurance,
            params.order_step_size,
            params.order_tick_size,
            params.min_order_size,
            params.concentration_coef_scale,
            params.curve_update_intensity,
            params.amm_jit_intensity,
            encode_name(params.name),
            accounts={
                "admin": self._authority,
                "state": self.state_public_key(),
                "perp_market": get_perp_market_public_key(self.program_id, market_index),
                "oracle": params.oracle,
                "rent": RENT,
                "system_program": SYS_PROGRAM_ID,
            },
        )

    def initialize_prediction_market(self, market_index: int) -> Instruction:
        return self._ix(
            "initialize_prediction_market",
            accounts={
                "admin": self._authority,
                "state": self.state_public_key(),
                "perp_market": get_perp_market_public_key(self.program_id, market_index),
            },
        )

    # user

    def user_public_key(self, sub_account_id: int = 0) -> Pubkey:
        return get_user_account_public_key(self.program_id, self._authority, sub_account_id)

    def user_stats_public_key(self) -> Pubkey:
        return get_user_stats_account_public_key(self.program_id, self._authority)

    def initialize_user_stats(self) -> Instruction:
        return self._ix(
            "initialize_user_stats",
            accounts={
                "user_stats": self.user_stats_public_key(),
                "state": self.state_public_key(),
                "authority": self._authority,
                "payer": self._authority,
                "rent": RENT,
                "system_program": SYS_PROGRAM_ID,
            },
        )

    def initialize_user(self, sub_account_id: int = 0, name: str = DEFAULT_USER_NAME) -> Instruction:
        return self._ix(
            "initialize_user",
            sub_account_id,
            encode_name(name),
            accounts={
                "user": self.user_public_key(sub_account_id),
                "user_stats": self.user_stats_public_key(),
                "state": self.state_public_key(),
                "authority": self._authority,
                "payer": self._authority,
                "rent": RENT,
                "system_program": SYS_PROGRAM_ID,
            },
        )

    def place_perp_order(
        self,
        order_params: Any,
        *,
        oracle: Pubkey,
        quote_spot_market_index: int = 0,
        sub_account_id: int = 0,
    ) -> Instruction:
        """Remaining accounts in program order: oracles, spot markets, perp markets."""
        remaining = [
            readable(oracle),
            readable(get_spot_market_public_key(self.program_id, quote_spot_market_index)),
            readable(get_perp_market_public_key(self.program_id, order_params.market_index)),
        ]
        return self._ix(
            "place_perp_order",
            order_params,
            accounts={
                "state": self.state_public_key(),
                "user": self.user_public_key(sub_account_id),
                "user_stats": self.user_stats_public_key(),
                "authority": self._authority,
            },
            remaining=remaining,
        )
