"""
drift-admin: operator command line.

Usage:
  drift-admin update-admin --new-admin <PUBKEY>
  drift-admin initialize-program --mint <USDC_MINT>
  drift-admin create-spot-market --mint <USDC_MINT>
  drift-admin create-perp-market [--prediction-market]
  drift-admin create-user [--sub-account-id N]
  drift-admin place-order --market-index 1 --direction Long --base-asset-amount 1000000
  drift-admin check-state
  drift-admin create-mint [--decimals 6] [--amount N]

Env: RPC_URL, DRIFT_ENV, ADMIN_PRIVATE_KEY_PATH, PROGRAM_ID, SOLANA_COMMITMENT,
     SKIP_PREFLIGHT, NEW_ADMIN_PUBLIC_KEY, USDC_MINT (see .env.example).
Exit status is 1 on any failure. Operation failures are logged once by
run_operation (error kind, signature, program logs); argument and settings
errors are logged here as command_rejected.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass
from functools import partial
from typing import Any, Sequence

from drift_admin.config.env import load_operator_env
from drift_admin.config.settings import COMMITMENT_LEVELS, OperatorSettings, get_settings, parse_pubkey
from drift_admin.core.exceptions import OperatorError
from drift_admin.logging import get_logger
from drift_admin.operations import (
    PerpOrderRequest,
    check_state,
    create_mint,
    create_perp_market,
    create_spot_market,
    create_user,
    initialize_program,
    place_perp_order,
    run_operation,
    update_admin,
)
from drift_admin.operations.base import Operation
from drift_admin.operations.create_mint import DEFAULT_DECIMALS, DEFAULT_MINT_AMOUNT
from drift_admin.operations.place_order import DIRECTIONS, ORDER_TYPES
from drift_admin.protocol.params import PerpMarketParams, SpotMarketParams

logger = get_logger(__name__)

SPOT_FIELDS = (
    "oracle_source",
    "optimal_utilization",
    "optimal_rate",
    "max_rate",
    "initial_asset_weight",
    "maintenance_asset_weight",
    "initial_liability_weight",
    "maintenance_liability_weight",
    "imf_factor",
    "asset_tier",
    "order_tick_size",
    "order_step_size",
    "name",
)
PERP_FIELDS = (
    "oracle_source",
    "contract_tier",
    "base_asset_reserve",
    "quote_asset_reserve",
    "periodicity",
    "margin_ratio_initial",
    "margin_ratio_maintenance",
    "if_liquidation_fee",
    "max_spread",
    "order_step_size",
    "order_tick_size",
    "min_order_size",
    "name",
)


@dataclass
class Command:
    name: str
    operation: Operation
    subscribe: bool = True
    require_program: bool = True


def _overrides(args: argparse.Namespace, names: Sequence[str]) -> dict[str, Any]:
    return {n: getattr(args, n) for n in names if getattr(args, n, None) is not None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="drift-admin", description="Administrative commands for the protocol program")
    parser.add_argument("--rpc-url", dest="rpc_url", default=None, help="RPC endpoint (env RPC_URL)")
    parser.add_argument("--program-id", dest="program_id", default=None, help="Program address (env PROGRAM_ID)")
    parser.add_argument("--keypair", dest="key_path", default=None, help="Signer keypair JSON (env ADMIN_PRIVATE_KEY_PATH)")
    parser.add_argument("--env", dest="drift_env", choices=("devnet", "mainnet-beta"), default=None)
    parser.add_argument("--commitment", choices=COMMITMENT_LEVELS, default=None)
    parser.add_argument("--skip-preflight", action="store_true", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("update-admin", help="Rotate the program admin key")
    p.add_argument("--new-admin", default=os.getenv("NEW_ADMIN_PUBLIC_KEY", ""))

    p = sub.add_parser("initialize-program", help="Create the program state account")
    p.add_argument("--mint", default=os.getenv("USDC_MINT", ""), help="Quote asset mint (env USDC_MINT)")

    p = sub.add_parser("create-spot-market", help="Create the next spot market")
    p.add_argument("--mint", default=os.getenv("USDC_MINT", ""))
    p.add_argument("--oracle", default=None, help="Oracle address (default pubkey for the quote market)")
    p.add_argument("--oracle-source", dest="oracle_source", default=None)
    p.add_argument("--asset-tier", dest="asset_tier", default=None, help="COLLATERAL, PROTECTED, CROSS, ISOLATED or UNLISTED")
    for flag in SPOT_FIELDS[1:9] + ("order_tick_size", "order_step_size"):
        p.add_argument("--" + flag.replace("_", "-"), dest=flag, type=int, default=None)
    p.add_argument("--name", default=None)
    p.add_argument("--decimals", dest="expected_decimals", type=int, default=None, help="Expected mint decimals (default 6)")
    p.add_argument("--skip-decimals-check", action="store_true")
    p.add_argument("--inactive", action="store_true", help="Initialize without activating the market")

    p = sub.add_parser("create-perp-market", help="Create the next perp market")
    p.add_argument("--oracle", default=None)
    p.add_argument("--oracle-source", dest="oracle_source", default=None)
    p.add_argument("--contract-tier", dest="contract_tier", default=None)
    for flag in PERP_FIELDS[2:12]:
        p.add_argument("--" + flag.replace("_", "-"), dest=flag, type=int, default=None)
    p.add_argument("--name", default=None)
    p.add_argument("--active", action="store_true")
    p.add_argument("--prediction-market", action="store_true", help="Convert to a prediction market afterwards")

    p = sub.add_parser("create-user", help="Create the signer's user account")
    p.add_argument("--sub-account-id", type=int, default=0)
    p.add_argument("--name", default=None)

    p = sub.add_parser("place-order", help="Place a perp order")
    p.add_argument("--market-index", type=int, default=1)
    p.add_argument("--direction", choices=DIRECTIONS, default="Long")
    p.add_argument("--order-type", choices=ORDER_TYPES, default="Market")
    p.add_argument("--base-asset-amount", type=int, default=1_000_000)
    p.add_argument("--price", type=int, default=0)
    p.add_argument("--reduce-only", action="store_true")
    p.add_argument("--sub-account-id", type=int, default=0)

    p = sub.add_parser("check-state", help="Print state and spot market details (read-only)")
    p.add_argument("--spot-market-index", type=int, default=0)

    p = sub.add_parser("create-mint", help="Devnet: create a mock collateral mint and fund the signer")
    p.add_argument("--decimals", type=int, default=DEFAULT_DECIMALS)
    p.add_argument("--amount", type=int, default=DEFAULT_MINT_AMOUNT)
    return parser


def settings_from_args(args: argparse.Namespace) -> OperatorSettings:
    return get_settings(
        rpc_url=args.rpc_url,
        program_id=args.program_id,
        key_path=args.key_path,
        drift_env=args.drift_env,
        commitment=args.commitment,
        skip_preflight=args.skip_preflight,
    )


def resolve_command(args: argparse.Namespace) -> Command:
    """Parse command arguments into an operation. Address errors surface here, before any network call."""
    name = args.command
    if name == "update-admin":
        new_admin = parse_pubkey(args.new_admin, "NEW_ADMIN_PUBLIC_KEY")
        return Command(name, partial(update_admin, new_admin=new_admin))
    if name == "initialize-program":
        mint = parse_pubkey(args.mint, "USDC_MINT")
        return Command(name, partial(initialize_program, quote_asset_mint=mint), subscribe=False)
    if name == "create-spot-market":
        fields = _overrides(args, SPOT_FIELDS)
        if args.oracle:
            fields["oracle"] = parse_pubkey(args.oracle, "--oracle")
        if args.skip_decimals_check:
            fields["expected_decimals"] = None
        elif args.expected_decimals is not None:
            fields["expected_decimals"] = args.expected_decimals
        params = SpotMarketParams(mint=parse_pubkey(args.mint, "USDC_MINT"), active_status=not args.inactive, **fields)
        return Command(name, partial(create_spot_market, params=params))
    if name == "create-perp-market":
        fields = _overrides(args, PERP_FIELDS)
        if args.oracle:
            fields["oracle"] = parse_pubkey(args.oracle, "--oracle")
        params = PerpMarketParams(active_status=args.active, prediction_market=args.prediction_market, **fields)
        return Command(name, partial(create_perp_market, params=params))
    if name == "create-user":
        return Command(name, partial(create_user, sub_account_id=args.sub_account_id, name=args.name))
    if name == "place-order":
        request = PerpOrderRequest(
            market_index=args.market_index,
            direction=args.direction,
            order_type=args.order_type,
            base_asset_amount=args.base_asset_amount,
            price=args.price,
            reduce_only=args.reduce_only,
            sub_account_id=args.sub_account_id,
        )
        return Command(name, partial(place_perp_order, request=request))
    if name == "check-state":
        return Command(name, partial(check_state, spot_market_index=args.spot_market_index))
    if name == "create-mint":
        return Command(
            name,
            partial(create_mint, decimals=args.decimals, amount=args.amount),
            subscribe=False,
            require_program=False,
        )
    raise OperatorError(f"Unknown command {name!r}")


def main(argv: Sequence[str] | None = None) -> int:
    load_operator_env()
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
        command = resolve_command(args)
    except OperatorError as e:
        logger.error(
            "command_rejected",
            command=args.command,
            error_kind=type(e).__name__,
            error=str(e),
            setting=getattr(e, "setting", None),
            field=getattr(e, "field", None),
        )
        return 1
    try:
        asyncio.run(
            run_operation(
                command.name,
                settings,
                command.operation,
                subscribe=command.subscribe,
                require_program=command.require_program,
            )
        )
    except Exception:
        # run_operation has already logged the failure with its context
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
