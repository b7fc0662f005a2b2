"""
Collaborator interfaces for the scheduling core.

The core never talks to web3 or Telegram directly. It is handed a
LedgerClient and a Notifier; chain.py and adapters/ provide the real ones,
tests provide in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .models import GotchiRecord, NotificationKind


class LedgerClient(ABC):
    """Read/write access to the Aavegotchi diamond contract."""

    @property
    @abstractmethod
    def account_address(self) -> str:
        """Address of the wallet that signs interact transactions."""
        ...

    @abstractmethod
    async def enumerate_ids(self, owner: str) -> list[int]:
        """All token ids owned by `owner`, in contract order. Raises FetchError."""
        ...

    @abstractmethod
    async def fetch_detail(self, token_id: int) -> GotchiRecord:
        """Read one gotchi. Raises FetchError."""
        ...

    @abstractmethod
    async def submit_action(self, token_ids: Sequence[int]) -> str:
        """Send interact(token_ids) and wait for confirmation. Returns tx hash. Raises SubmissionError."""
        ...

    @abstractmethod
    async def check_connectivity(self) -> bool:
        ...

    @abstractmethod
    async def estimate_interact_gas(self, token_ids: Sequence[int]) -> int:
        ...

    @abstractmethod
    async def get_latest_block(self) -> int:
        ...


class Notifier(ABC):
    """
    Best-effort operator channel.

    Implementations of notify() must never raise: delivery failures are
    logged and swallowed so they cannot stop the bot.
    """

    @abstractmethod
    async def notify(self, kind: NotificationKind, text: str, tx_hash: Optional[str] = None) -> None:
        ...

    async def send_success(self, text: str, tx_hash: Optional[str] = None) -> None:
        await self.notify(NotificationKind.SUCCESS, text, tx_hash)

    async def send_error(self, text: str, error: Optional[BaseException] = None) -> None:
        if error is not None:
            text = f"{text}\n\nError: {error}"
        await self.notify(NotificationKind.ERROR, text)

    async def send_info(self, text: str) -> None:
        await self.notify(NotificationKind.INFO, text)

    async def close(self) -> None:
        """Release transport resources. Default: nothing to release."""
        return None
