"""
Timing Aggregator: one shared lastInteracted for the whole batch

getAavegotchi() reads on Base are unreliable (some tokens always revert,
public RPCs rate-limit), but tokenIdsOfOwner() is not. So:
- the id list from enumeration is what gets petted, always
- detail reads are best-effort; a failed read only drops the record
- the FIRST claimed record in enumeration order sets the shared timing

All gotchis of one owner are petted together, so one timestamp is enough
to schedule the whole batch.
"""

import logging
from datetime import datetime, timezone

from .errors import FetchError
from .models import GotchiBatch, GotchiRecord
from .ports import LedgerClient

logger = logging.getLogger("sitter.timing")


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class TimingAggregator:

    def __init__(self, ledger: LedgerClient):
        self._ledger = ledger

    async def collect(self, owner: str) -> GotchiBatch:
        """
        Enumerate and fetch every gotchi of `owner`.

        Enumeration failure propagates (nothing to act on). Per-id FetchError
        is logged and skipped; the id stays in all_ids.
        """
        all_ids = tuple(await self._ledger.enumerate_ids(owner))
        if not all_ids:
            logger.info(f"No Aavegotchis found for owner {owner}")
            return GotchiBatch(owner=owner)

        logger.debug(f"Found {len(all_ids)} token ids: {list(all_ids[:10])}")

        fetched: list[GotchiRecord] = []
        shared = None

        for token_id in all_ids:
            try:
                record = await self._ledger.fetch_detail(token_id)
            except FetchError as e:
                # Still petted: all_ids is untouched
                logger.warning(f"Failed to fetch gotchi {token_id}: {e}")
                continue

            if not record.claimed:
                continue

            fetched.append(record)
            if shared is None:
                shared = record.last_interacted
                logger.debug(
                    f"Using shared lastInteracted from token {token_id}: {_iso(shared)}"
                )

        logger.info(
            f"Collected {owner}: {len(all_ids)} ids, {len(fetched)} fetched, "
            f"shared_timing={'yes' if shared is not None else 'no'}"
        )

        return GotchiBatch(
            owner=owner,
            all_ids=all_ids,
            fetched_records=tuple(fetched),
            shared_last_interacted=shared,
        )
