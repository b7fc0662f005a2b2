"""
Interaction Verifier: did the pet actually land?

interact() does not revert when a gotchi is still in cooldown; it just
doesn't update lastInteracted. The only way to know is to read back.

Rules per re-fetched token:
- with a pre-interaction time: updated iff lastInteracted > before (strict)
- without one: updated iff lastInteracted is within the recency window

Per-token FetchError is expected (some tokens never read) and skipped.
Anything else breaking the verification pass is reported as an ASSUMED
success. Callers see `assumed=True` and track it.
"""

import logging
import time
from typing import Callable, Optional, Sequence

from .config import TIMINGS
from .errors import FetchError
from .models import VerificationResult
from .ports import LedgerClient

logger = logging.getLogger("sitter.verifier")


class InteractionVerifier:

    def __init__(
        self,
        ledger: LedgerClient,
        clock: Callable[[], float] = time.time,
        recency_window: float = TIMINGS.RECENCY_WINDOW_SECONDS,
    ):
        self._ledger = ledger
        self._clock = clock
        self._recency_window = recency_window

    async def verify(
        self,
        token_ids: Sequence[int],
        before: Optional[int] = None,
    ) -> VerificationResult:
        try:
            return await self._verify(token_ids, before)
        except Exception as e:
            logger.error(f"Error during petting verification, assuming success: {e}")
            return VerificationResult(success=True, updated_ids=(), assumed=True)

    async def _verify(self, token_ids: Sequence[int], before: Optional[int]) -> VerificationResult:
        logger.debug(
            f"Verifying {len(token_ids)} tokens "
            f"(before={before if before is not None else 'unknown'})"
        )

        updated: list[int] = []
        for token_id in token_ids:
            try:
                record = await self._ledger.fetch_detail(token_id)
            except FetchError:
                logger.debug(f"Could not verify token {token_id}, expected for failed fetches")
                continue

            if self._is_updated(record.last_interacted, before):
                updated.append(token_id)

        success = bool(updated)
        if success:
            logger.info(
                f"Petting verified: {len(updated)}/{len(token_ids)} tokens updated {updated}"
            )
        else:
            logger.warning(
                f"Petting verification failed: no token of {len(token_ids)} shows a new lastInteracted"
            )
        return VerificationResult(success=success, updated_ids=tuple(updated))

    def _is_updated(self, last_interacted: int, before: Optional[int]) -> bool:
        if before is not None:
            return last_interacted > before
        return last_interacted > self._clock() - self._recency_window
