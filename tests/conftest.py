"""Shared fakes: in-memory ledger, recording notifier, settable clock."""

import asyncio
import dataclasses
from typing import Optional, Sequence

import pytest

from sitter.errors import FetchError
from sitter.models import GotchiRecord, NotificationKind
from sitter.ports import LedgerClient, Notifier

OWNER = "0x" + "ab" * 20
BOT = "0x" + "b0" * 20
CLAIMED = 3


def gotchi(token_id: int, last_interacted: int, status: int = CLAIMED, kinship: int = 50) -> GotchiRecord:
    return GotchiRecord(
        token_id=token_id,
        last_interacted=last_interacted,
        status=status,
        name=f"gotchi-{token_id}",
        owner=OWNER,
        kinship=kinship,
    )


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeLedger(LedgerClient):
    """
    ids: what tokenIdsOfOwner returns
    records: readable gotchis; any id missing here raises FetchError
    submit_effects: consumed per submit_action call; None = ok, Exception = raise
    touch_on_submit: if set, successful submits bump readable records to this time
    submit_delay: seconds each submit_action spends "on chain"
    """

    def __init__(self, ids: Sequence[int] = (), records: Sequence[GotchiRecord] = ()):
        self.ids = list(ids)
        self.records = {r.token_id: r for r in records}
        self.connected = True
        self.enumerate_error: Optional[Exception] = None
        self.submit_effects: list = []
        self.touch_on_submit: Optional[int] = None
        self.submit_delay: float = 0.0
        self.submissions: list[list[int]] = []
        self.detail_calls: list[int] = []

    @property
    def account_address(self) -> str:
        return BOT

    async def enumerate_ids(self, owner: str) -> list[int]:
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.ids)

    async def fetch_detail(self, token_id: int) -> GotchiRecord:
        self.detail_calls.append(token_id)
        record = self.records.get(token_id)
        if record is None:
            raise FetchError(f"getAavegotchi({token_id}) reverted")
        return record

    async def submit_action(self, token_ids: Sequence[int]) -> str:
        self.submissions.append(list(token_ids))
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        effect = self.submit_effects.pop(0) if self.submit_effects else None
        if isinstance(effect, Exception):
            raise effect
        if self.touch_on_submit is not None:
            for token_id in token_ids:
                if token_id in self.records:
                    self.records[token_id] = dataclasses.replace(
                        self.records[token_id], last_interacted=self.touch_on_submit
                    )
        return f"0x{len(self.submissions):064x}"

    async def check_connectivity(self) -> bool:
        if isinstance(self.connected, Exception):
            raise self.connected
        return self.connected

    async def estimate_interact_gas(self, token_ids: Sequence[int]) -> int:
        return 60_000 * len(token_ids)

    async def get_latest_block(self) -> int:
        return 1_000_000


class RecordingNotifier(Notifier):

    def __init__(self):
        self.messages: list[tuple[NotificationKind, str, Optional[str]]] = []

    async def notify(self, kind: NotificationKind, text: str, tx_hash: Optional[str] = None) -> None:
        self.messages.append((kind, text, tx_hash))

    def of_kind(self, kind: NotificationKind) -> list[tuple[NotificationKind, str, Optional[str]]]:
        return [m for m in self.messages if m[0] is kind]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()
