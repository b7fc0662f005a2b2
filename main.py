"""
Aavegotchi Pet Sitter - main entry point

Loads config, connects to Base, validates the target, starts the scheduler,
and reports status until SIGINT/SIGTERM.

Usage:
    python main.py              # Start the pet sitter (reads .env)
"""

import asyncio
import logging
import os
import re
import signal
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

# ============================================================
# BOOTSTRAP
# ============================================================

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


class _PrivateKeyRedactor(logging.Filter):
    """Scrub raw private keys (64 hex chars, with or without 0x) from log records."""

    KEY_HEX = re.compile(r"(?<![0-9a-fA-F])[0-9a-fA-F]{64}(?![0-9a-fA-F])")

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Broken %-args: let the handler report it
            return True
        if self.KEY_HEX.search(message):
            record.msg = self.KEY_HEX.sub("[REDACTED]", message)
            record.args = None
        return True


_redactor = _PrivateKeyRedactor()
for _handler in logging.root.handlers:
    _handler.addFilter(_redactor)

logger = logging.getLogger("sitter.main")


# ============================================================
# MODULE IMPORTS
# ============================================================

from sitter.adapters.telegram_adapter import TelegramNotifier
from sitter.chain import GotchiLedger
from sitter.config import TIMINGS, load_config
from sitter.errors import ConfigError, StartupFailure
from sitter.scheduler import PetScheduler


def _fmt_time(ts) -> str:
    if ts is None:
        return "unknown"
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _status_line(scheduler: PetScheduler, ledger: GotchiLedger, notifier: TelegramNotifier) -> str:
    status = scheduler.get_status()
    chain = ledger.get_status()
    telegram = notifier.get_status()
    line = (
        f"Status report | running={status.running} | pets={status.total_pets} | "
        f"errors={status.errors} | assumed_verifications={status.assumed_verifications} | "
        f"last_pet={_fmt_time(status.last_pet_time)} | next_pet={_fmt_time(status.next_pet_time)} | "
        f"txs={chain['tx_count']} | rpc={chain['rpc_url']} | "
        f"telegram sent={telegram['sent']} failed={telegram['failed']}"
    )
    if chain["last_error"]:
        line += f" | last_chain_error={chain['last_error']}"
    return line


async def _status_report_loop(scheduler: PetScheduler, ledger: GotchiLedger, notifier: TelegramNotifier) -> None:
    while True:
        await asyncio.sleep(TIMINGS.STATUS_REPORT_INTERVAL_SECONDS)
        logger.info(_status_line(scheduler, ledger, notifier))


async def run() -> int:
    try:
        config = load_config(dotenv=False)
    except ConfigError as e:
        logger.error(f"Configuration validation failed: {e}")
        return 1

    logger.info("=" * 60)
    logger.info("Aavegotchi Pet Sitter - Base Chain Edition")
    logger.info(
        f"Target: {config.target_address} | contract: {config.diamond_address} | "
        f"interval: {config.pet_interval_hours}h"
    )
    logger.info("=" * 60)

    ledger = GotchiLedger()
    if not ledger.initialize(config.private_key, config.diamond_address, config.rpc_urls):
        logger.error("Could not connect to any Base RPC")
        return 1

    notifier = TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    scheduler = PetScheduler(
        ledger,
        notifier,
        config.target_address,
        cooldown_seconds=config.cooldown_seconds,
        health_check_seconds=config.health_check_seconds,
    )

    try:
        info = await scheduler.get_target_info()
        logger.info(
            f"Target validation: {info['total_token_ids']} ids, "
            f"{len(info['aavegotchis'])} fetched "
            f"{[g.token_id for g in info['aavegotchis']]}"
        )
        if info["total_token_ids"] == 0:
            raise StartupFailure(f"No Aavegotchis found for target address: {config.target_address}")
        if not info["aavegotchis"]:
            logger.warning(
                "No individual Aavegotchi data could be fetched, "
                "will proceed with failure-safe petting using token ids only"
            )

        await scheduler.start()
    except Exception as e:
        logger.error(f"Failed to start pet sitter: {e}")
        await notifier.close()
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    logger.info("Pet Sitter is now running. Press Ctrl+C to stop.")
    reporter = asyncio.create_task(_status_report_loop(scheduler, ledger, notifier))

    exit_code = 0
    try:
        await stop_event.wait()
        logger.info("Received shutdown signal, shutting down gracefully...")
    finally:
        reporter.cancel()
        try:
            await scheduler.stop()
            logger.info("Shutdown completed successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")
            exit_code = 1
        await notifier.close()

    return exit_code


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        sys.exit(0)
