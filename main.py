"""
Main entrypoint: run one operator command against the configured Drift program.

Same as `drift-admin <command>` or `python -m drift_admin <command>`.

Env: RPC_URL, DRIFT_ENV, ADMIN_PRIVATE_KEY_PATH, PROGRAM_ID (see .env.example).

Examples:
  python main.py check-state
  python main.py update-admin --new-admin <PUBKEY>
"""

import sys

# Configure structured logging before other imports that may log
from drift_admin.logging import get_logger

logger = get_logger("main")


def main() -> None:
    from drift_admin.cli import main as cli_main

    code = cli_main(sys.argv[1:])
    if code:
        logger.info("exiting", exit_code=code)
    sys.exit(code)


if __name__ == "__main__":
    main()
