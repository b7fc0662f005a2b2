"""
Estimate gas for an interact() call without sending anything.

Usage:
    python scripts/estimate_gas.py                 # First gotchi of TARGET_ADDRESS
    python scripts/estimate_gas.py 2973 7765       # Specific token ids
    python scripts/estimate_gas.py --all           # Whole batch
    python scripts/estimate_gas.py --json
"""

import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

load_dotenv(ROOT / ".env")

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

from sitter.chain import GotchiLedger
from sitter.config import load_config
from sitter.errors import ConfigError, SitterError


async def estimate(token_ids: list[int], use_all: bool) -> dict:
    config = load_config(dotenv=False)
    ledger = GotchiLedger()
    if not ledger.initialize(config.private_key, config.diamond_address, config.rpc_urls):
        raise SitterError("Failed to connect to any Base RPC")

    if not token_ids:
        owned = await ledger.enumerate_ids(config.target_address)
        if not owned:
            raise SitterError(f"No Aavegotchis found for {config.target_address}")
        token_ids = owned if use_all else owned[:1]

    gas = await ledger.estimate_interact_gas(token_ids)
    return {
        "bot_account": ledger.account_address,
        "block": await ledger.get_latest_block(),
        "token_ids": token_ids,
        "gas_estimate": gas,
        "gas_per_gotchi": gas // len(token_ids),
    }


def main():
    parser = argparse.ArgumentParser(description="Estimate interact() gas")
    parser.add_argument("token_ids", nargs="*", type=int, help="Token ids (default: first owned)")
    parser.add_argument("--all", action="store_true", help="Estimate for every owned gotchi")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    try:
        result = asyncio.run(estimate(args.token_ids, args.all))
    except (ConfigError, SitterError) as e:
        print(f"Estimation failed: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result, indent=2))
        return

    print(f"Bot account:    {result['bot_account']}")
    print(f"Block:          {result['block']}")
    print(f"Token ids:      {', '.join(str(i) for i in result['token_ids'][:10])}"
          f"{' ...' if len(result['token_ids']) > 10 else ''}")
    print(f"Gas estimate:   {result['gas_estimate']}")
    print(f"Per gotchi:     ~{result['gas_per_gotchi']}")


if __name__ == "__main__":
    main()
