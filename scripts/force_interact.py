"""
Pet gotchis right now, ignoring the scheduler's cooldown math.

Prints lastInteracted/kinship before and after, then the verifier's verdict.
If the gotchis are still in cooldown the transaction succeeds but nothing
changes on-chain; that is the case this script exists to show.

Usage:
    python scripts/force_interact.py --yes          # First gotchi only
    python scripts/force_interact.py --all --yes    # Whole batch in one tx
    python scripts/force_interact.py                # Dry run: show pre-state only
"""

import sys
import asyncio
import argparse
import logging
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

load_dotenv(ROOT / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("sitter.force_interact")

from sitter.chain import GotchiLedger
from sitter.config import TIMINGS, load_config
from sitter.errors import ConfigError, FetchError, SitterError
from sitter.verifier import InteractionVerifier


def _fmt(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


async def _snapshot(ledger: GotchiLedger, token_ids: list[int]) -> dict:
    records = {}
    for token_id in token_ids:
        try:
            records[token_id] = await ledger.fetch_detail(token_id)
        except FetchError as e:
            logger.warning(f"  {token_id}: unreadable ({e})")
    return records


async def force_interact(use_all: bool, send: bool) -> int:
    config = load_config(dotenv=False)
    ledger = GotchiLedger()
    if not ledger.initialize(config.private_key, config.diamond_address, config.rpc_urls):
        raise SitterError("Failed to connect to any Base RPC")

    logger.info(f"Contract: {config.diamond_address} | bot: {ledger.account_address}")
    logger.info(f"Target: {config.target_address}")

    owned = await ledger.enumerate_ids(config.target_address)
    if not owned:
        raise SitterError("No Aavegotchis found for the target address")
    token_ids = owned if use_all else owned[:1]
    logger.info(f"Found {len(owned)} gotchis, petting {len(token_ids)}")

    before = await _snapshot(ledger, token_ids)
    for token_id, g in before.items():
        logger.info(f"  PRE  {g.name!r} ({token_id}) kinship={g.kinship} last={_fmt(g.last_interacted)}")

    gas = await ledger.estimate_interact_gas(token_ids)
    logger.info(f"Gas estimate: {gas} (~{gas // len(token_ids)} per gotchi)")

    if not send:
        logger.info("Dry run, pass --yes to send the transaction")
        return 0

    tx_hash = await ledger.submit_action(token_ids)
    logger.info(f"Confirmed: {ledger.get_explorer_url(tx_hash)}")
    await asyncio.sleep(TIMINGS.SETTLE_DELAY_SECONDS)

    after = await _snapshot(ledger, token_ids)
    for token_id, g in after.items():
        prev = before.get(token_id)
        delta = g.kinship - prev.kinship if prev else 0
        logger.info(
            f"  POST {g.name!r} ({token_id}) kinship={g.kinship} ({delta:+d}) "
            f"last={_fmt(g.last_interacted)}"
        )

    pre_timing = next(iter(before.values())).last_interacted if before else None
    verdict = await InteractionVerifier(ledger).verify(token_ids, pre_timing)
    if verdict.success:
        logger.info(f"Verified: {len(verdict.updated_ids)}/{len(token_ids)} updated")
        return 0
    logger.warning("Transaction confirmed but no gotchi updated, still in cooldown?")
    return 2


def main():
    parser = argparse.ArgumentParser(description="Force an interact() transaction")
    parser.add_argument("--all", action="store_true", help="Pet every owned gotchi in one tx")
    parser.add_argument("--yes", action="store_true", help="Actually send the transaction")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(force_interact(args.all, args.yes)))
    except (ConfigError, SitterError) as e:
        logger.error(f"Force interact failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
