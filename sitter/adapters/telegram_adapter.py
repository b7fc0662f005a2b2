"""
Telegram Adapter: operator notifications

POST https://api.telegram.org/bot<token>/sendMessage with Markdown text.
Never raises: a dead chat channel must not stop the pet sitter.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import aiohttp

from sitter.config import BASE_CHAIN
from sitter.models import NotificationKind
from sitter.ports import Notifier

logger = logging.getLogger("sitter.adapter.telegram")

TELEGRAM_API_URL = "https://api.telegram.org"

_EMOJIS = {
    NotificationKind.SUCCESS: "✅",
    NotificationKind.ERROR: "❌",
    NotificationKind.INFO: "ℹ️",
}


def format_message(
    kind: NotificationKind,
    text: str,
    tx_hash: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    message = f"{_EMOJIS.get(kind, 'ℹ️')} *Aavegotchi Pet Sitter*\n\n"
    message += f"*Time:* {timestamp}\n"
    message += f"*Type:* {kind.value.upper()}\n"
    message += f"*Message:* {text}\n"
    if tx_hash:
        message += f"*Transaction:* [View on BaseScan]({BASE_CHAIN['explorer']}/tx/{tx_hash})\n"
    return message


class TelegramNotifier(Notifier):

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._url = f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=15)
        self._sent = 0
        self._failed = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def notify(self, kind: NotificationKind, text: str, tx_hash: Optional[str] = None) -> None:
        message = format_message(kind, text, tx_hash)
        payload = {
            "chat_id": self._chat_id,
            "text": message,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        try:
            session = await self._get_session()
            async with session.post(self._url, json=payload) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    raise RuntimeError(f"Telegram API error: {resp.status} - {body[:200]}")
            self._sent += 1
            logger.debug(f"Telegram {kind.value} sent ({len(message)} chars)")
        except Exception as e:
            self._failed += 1
            logger.error(f"Failed to send Telegram {kind.value} notification: {e} | {text[:100]!r}")

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def get_status(self) -> dict:
        return {"sent": self._sent, "failed": self._failed}
