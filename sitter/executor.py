"""
Action Executor: one batched interact per cycle

Sequence for a due cycle:
1. interact(all ids) in ONE transaction
2. settle delay, then spawn a detached CONTROL interact (same ids)
3. verify against the pre-interaction shared timing
4. count + notify only on verified success

Failure policy:
- primary submission error → errors += 1, error notification, no retry
  (the next scheduler tick re-attempts if still due)
- verified-but-unchanged → not an error (usually cooldown), no notification
- control tx failure → notified on its own, never touches counters
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

from .config import TIMINGS
from .models import ActionOutcome, BotState
from .ports import LedgerClient, Notifier
from .verifier import InteractionVerifier

logger = logging.getLogger("sitter.executor")


def _plural(count: int) -> str:
    return "Aavegotchi" if count == 1 else "Aavegotchis"


class ActionExecutor:

    def __init__(
        self,
        ledger: LedgerClient,
        notifier: Notifier,
        verifier: InteractionVerifier,
        state: BotState,
        clock: Callable[[], float] = time.time,
        settle_delay: float = TIMINGS.SETTLE_DELAY_SECONDS,
        control_delay: float = TIMINGS.CONTROL_DELAY_SECONDS,
    ):
        self._ledger = ledger
        self._notifier = notifier
        self._verifier = verifier
        self._state = state
        self._clock = clock
        self._settle_delay = settle_delay
        self._control_delay = control_delay
        # Strong refs so detached control tasks aren't garbage collected mid-flight
        self._control_tasks: set[asyncio.Task] = set()

    @property
    def control_tasks(self) -> frozenset:
        return frozenset(self._control_tasks)

    async def pet_all(
        self,
        token_ids: Sequence[int],
        shared_last_interacted: Optional[int] = None,
    ) -> ActionOutcome:
        ids = list(token_ids)
        count = len(ids)
        logger.info(f"Starting failure-safe pet transaction for {count} tokens: {ids}")

        try:
            tx_hash = await self._ledger.submit_action(ids)
        except Exception as e:
            self._state.errors += 1
            logger.error(f"Pet transaction failed for {ids}: {e}")
            await self._notifier.send_error(f"Failed to pet {count} {_plural(count)}", e)
            return ActionOutcome(success=False, pet_count=0, error=str(e))

        if self._settle_delay > 0:
            await asyncio.sleep(self._settle_delay)

        self._spawn_control(ids, tx_hash)

        verification = await self._verifier.verify(ids, shared_last_interacted)
        if verification.assumed:
            self._state.assumed_verifications += 1
            logger.warning(
                f"Verification unavailable for {tx_hash}, assumed success "
                f"(assumed so far: {self._state.assumed_verifications})"
            )

        if not verification.success:
            logger.warning(
                f"Pet transaction {tx_hash} confirmed but verification failed, "
                f"likely still in cooldown: {ids}"
            )
            return ActionOutcome(
                success=False,
                pet_count=0,
                tx_hash=tx_hash,
                error="Petting verification failed - likely hit cooldown period",
            )

        self._state.total_pets += 1
        self._state.last_pet_time = self._clock()
        verified = len(verification.updated_ids)

        await self._notifier.send_success(
            f"🎉 Successfully petted {count} {_plural(count)}!\n\n"
            f"Transaction: {tx_hash}\n"
            f"Verified: {verified} tokens\n"
            f"Total pets: {self._state.total_pets}\n"
            f"Control transaction will be sent in {self._control_delay:g} seconds",
            tx_hash,
        )
        logger.info(
            f"Pet transaction {tx_hash} verified | count={count} | "
            f"verified={verified} | total_pets={self._state.total_pets}"
        )

        return ActionOutcome(
            success=True,
            pet_count=count,
            tx_hash=tx_hash,
            verified_count=verified,
        )

    # ============================================================
    # CONTROL TRANSACTION
    # ============================================================

    def _spawn_control(self, token_ids: list[int], original_tx: str) -> None:
        task = asyncio.create_task(self._send_control(token_ids, original_tx))
        self._control_tasks.add(task)
        task.add_done_callback(self._control_tasks.discard)

    async def _send_control(self, token_ids: list[int], original_tx: str) -> None:
        if self._control_delay > 0:
            await asyncio.sleep(self._control_delay)

        count = len(token_ids)
        logger.info(f"Sending control interact for {count} tokens: {token_ids}")
        try:
            control_tx = await self._ledger.submit_action(token_ids)
        except Exception as e:
            logger.error(f"Control transaction failed (original {original_tx}): {e}")
            await self._notifier.send_error(
                f"Control transaction failed for {count} {_plural(count)}", e
            )
            return

        logger.info(f"Control transaction {control_tx} completed (original {original_tx})")
        await self._notifier.send_info(
            f"🔄 Control transaction sent for {count} {_plural(count)}!\n\n"
            f"Control TX: {control_tx}\n"
            f"Original TX: {original_tx}"
        )
