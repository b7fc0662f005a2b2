"""
Pet Scheduler: the decision loop

Two independent background loops:
- monitor loop (every TICK_INTERVAL): collect batch → compute next pet time
  → pet when due
- health loop (every health_check_interval): connectivity probe, report only

Resilience:
- a tick NEVER kills the loop: any exception is counted, notified, and the
  next tick runs as usual
- startup is the only fail-fast point: no RPC or nothing to pet → raise
- stop() cancels the loops but lets an in-flight tick finish (shielded);
  detached control transactions are left alone

Owns BotState and hands it to the executor by reference. Everything runs on
one event loop and ticks never overlap, so no locks.
"""

import asyncio
import dataclasses
import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from .config import TIMINGS
from .errors import StartupFailure
from .executor import ActionExecutor
from .models import BotState, GotchiBatch, GotchiRecord
from .ports import LedgerClient, Notifier
from .timing import TimingAggregator
from .verifier import InteractionVerifier

logger = logging.getLogger("sitter.scheduler")


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class PetScheduler:
    """
    Usage:
        scheduler = PetScheduler(ledger, notifier, target, cooldown_seconds=12 * 3600)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        ledger: LedgerClient,
        notifier: Notifier,
        target_address: str,
        cooldown_seconds: float,
        health_check_seconds: float = 30 * 60,
        tick_interval: float = TIMINGS.TICK_INTERVAL_SECONDS,
        initial_delay: float = TIMINGS.INITIAL_TICK_DELAY_SECONDS,
        clock: Callable[[], float] = time.time,
        settle_delay: float = TIMINGS.SETTLE_DELAY_SECONDS,
        control_delay: float = TIMINGS.CONTROL_DELAY_SECONDS,
    ):
        self._ledger = ledger
        self._notifier = notifier
        self._target = target_address
        self._cooldown = cooldown_seconds
        self._health_interval = health_check_seconds
        self._tick_interval = tick_interval
        self._initial_delay = initial_delay
        self._clock = clock

        self._state = BotState(target=target_address)
        self._aggregator = TimingAggregator(ledger)
        self._executor = ActionExecutor(
            ledger,
            notifier,
            InteractionVerifier(ledger, clock=clock),
            self._state,
            clock=clock,
            settle_delay=settle_delay,
            control_delay=control_delay,
        )

        self._monitor_task: Optional[asyncio.Task] = None
        self._health_task: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()

        logger.info(
            f"PetScheduler initialized | target={target_address} | "
            f"cooldown={cooldown_seconds / 3600:g}h | bot={ledger.account_address}"
        )

    @property
    def executor(self) -> ActionExecutor:
        return self._executor

    @property
    def is_running(self) -> bool:
        return self._state.running

    # ============================================================
    # LIFECYCLE
    # ============================================================

    async def start(self) -> None:
        if self._state.running:
            logger.warning("Pet sitter is already running")
            return

        logger.info("Starting Aavegotchi Pet Sitter")
        try:
            if not await self._ledger.check_connectivity():
                raise StartupFailure("Failed to connect to Base network")

            batch = await self._aggregator.collect(self._target)
            if not batch.fetched_records:
                raise StartupFailure(f"No claimed Aavegotchis found for address {self._target}")
        except Exception as e:
            self._state.running = False
            logger.error(f"Failed to start pet sitter: {e}")
            await self._notifier.send_error("Failed to start pet sitter", e)
            if isinstance(e, StartupFailure):
                raise
            raise StartupFailure(str(e)) from e

        self._state.running = True
        self._state.started_at = self._clock()

        await self._notifier.send_info(
            f"🚀 Pet Sitter started successfully!\n\n"
            f"Target: {self._target}\n"
            f"Aavegotchis: {len(batch.fetched_records)}\n"
            f"Interval: {self._cooldown / 3600:g} hours\n"
            f"Bot Account: {self._ledger.account_address}"
        )

        self._monitor_task = asyncio.create_task(self._monitor_loop())
        self._health_task = asyncio.create_task(self._health_loop())

        logger.info(
            f"Pet sitter started | gotchis={len(batch.fetched_records)} | "
            f"ids={len(batch.all_ids)} | interval={self._cooldown / 3600:g}h"
        )

    async def stop(self) -> None:
        if not self._state.running:
            logger.warning("Pet sitter is not running")
            return

        logger.info("Stopping Aavegotchi Pet Sitter")
        self._state.running = False

        loops = [t for t in (self._monitor_task, self._health_task) if t is not None]
        for task in loops:
            task.cancel()
        await asyncio.gather(*loops, return_exceptions=True)
        # A tick cut off mid-loop keeps running under its shield; wait it out
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        self._monitor_task = None
        self._health_task = None

        await self._notifier.send_info("🛑 Pet Sitter stopped")
        logger.info("Pet sitter stopped")

    # ============================================================
    # LOOPS
    # ============================================================

    async def _monitor_loop(self) -> None:
        await asyncio.sleep(self._initial_delay)
        while self._state.running:
            # Shielded: cancelling the loop must not abort a tick mid-transaction
            tick = asyncio.create_task(self.check_and_pet())
            self._inflight.add(tick)
            tick.add_done_callback(self._inflight.discard)
            await asyncio.shield(tick)
            await asyncio.sleep(self._tick_interval)

    async def _health_loop(self) -> None:
        while self._state.running:
            await asyncio.sleep(self._health_interval)
            if not self._state.running:
                break
            await self.health_check()

    async def health_check(self) -> bool:
        """Connectivity probe. Reports loss, never acts on it."""
        try:
            connected = await self._ledger.check_connectivity()
            error: Optional[Exception] = None if connected else ConnectionError(
                "Lost connection to Base network"
            )
        except Exception as e:
            connected = False
            error = e

        if connected:
            logger.debug("Health check passed")
            return True

        logger.error(f"Health check failed: {error}")
        self._state.errors += 1
        await self._notifier.send_error("Health check failed - connection issues detected", error)
        return False

    # ============================================================
    # ONE TICK
    # ============================================================

    async def check_and_pet(self) -> None:
        try:
            batch = await self._aggregator.collect(self._target)

            if not batch.all_ids:
                logger.warning("No Aavegotchis available for petting")
                return

            now = self._clock()
            next_pet = self.next_pet_time(batch, now)
            self._state.next_pet_time = next_pet

            if now >= next_pet:
                logger.info(
                    f"Pet time reached | ids={len(batch.all_ids)} | "
                    f"fetched={len(batch.fetched_records)} | "
                    f"shared_timing={batch.has_shared_timing}"
                )
                await self._executor.pet_all(batch.all_ids, batch.shared_last_interacted)
                return

            minutes_left = math.ceil((next_pet - now) / 60)
            message = (
                f"Next pet in {minutes_left} minutes ({_iso(next_pet)}) | "
                f"ids={len(batch.all_ids)} | fetched={len(batch.fetched_records)}"
            )
            if minutes_left % TIMINGS.NEXT_PET_LOG_EVERY_MINUTES == 0:
                logger.info(message)
            else:
                logger.debug(message)

        except Exception as e:
            logger.error(f"Error checking pet status: {e}")
            self._state.errors += 1
            await self._notifier.send_error(
                "Error occurred while checking pet status. Will retry on next cycle.", e
            )

    def next_pet_time(self, batch: GotchiBatch, now: float) -> float:
        if batch.shared_last_interacted is not None:
            logger.debug(
                f"Using shared lastInteracted {_iso(batch.shared_last_interacted)} "
                f"+ {self._cooldown / 3600:g}h"
            )
            return batch.shared_last_interacted + self._cooldown

        logger.warning("No shared timing available, using fallback timing")
        return now + self._cooldown

    # ============================================================
    # STATUS
    # ============================================================

    def get_status(self) -> BotState:
        """Snapshot copy; mutating it does not touch the scheduler."""
        return dataclasses.replace(self._state)

    async def get_target_info(self) -> dict:
        batch = await self._aggregator.collect(self._target)
        records: list[GotchiRecord] = list(batch.fetched_records)
        return {
            "address": self._target,
            "aavegotchis": records,
            "total_token_ids": len(batch.all_ids),
        }
