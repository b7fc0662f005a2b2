"""
Gotchi Ledger - On-Chain Access Layer

LedgerClient implementation for the Aavegotchi diamond on Base.

Design:
- Sync Web3 calls wrapped in asyncio.run_in_executor() (web3.py async is fragile)
- Embedded minimal ABI: only tokenIdsOfOwner, getAavegotchi, interact
- Gas estimation + 20% buffer, nonce auto from chain
- RPC picked once at initialize(): first URL that answers wins
- Reads raise FetchError, writes raise SubmissionError; callers decide policy
"""

import asyncio
import logging
from typing import Sequence

from eth_account import Account
from web3 import Web3

from .config import BASE_CHAIN, TIMINGS
from .errors import FetchError, SubmissionError
from .models import GotchiRecord
from .ports import LedgerClient

logger = logging.getLogger("sitter.chain")


# ============================================================
# MINIMAL ABI, only functions we call at runtime
# ============================================================

# Field order of the AavegotchiInfo struct returned by getAavegotchi()
GOTCHI_FIELDS = (
    ("tokenId", "uint256"),
    ("name", "string"),
    ("owner", "address"),
    ("randomNumber", "uint256"),
    ("status", "uint256"),
    ("numericTraits", "int16[6]"),
    ("modifiedNumericTraits", "int16[6]"),
    ("equippedWearables", "uint16[16]"),
    ("collateral", "address"),
    ("escrow", "address"),
    ("stakedAmount", "uint256"),
    ("minimumStake", "uint256"),
    ("kinship", "uint256"),
    ("lastInteracted", "uint256"),
    ("experience", "uint256"),
    ("toNextLevel", "uint256"),
    ("usedSkillPoints", "uint256"),
    ("level", "uint256"),
    ("hauntId", "uint256"),
    ("baseRarityScore", "uint256"),
    ("modifiedRarityScore", "uint256"),
    ("locked", "bool"),
)

DIAMOND_ABI = [
    # tokenIdsOfOwner(address) → uint32[]
    {
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "tokenIdsOfOwner",
        "outputs": [{"name": "tokenIds_", "type": "uint32[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    # getAavegotchi(uint256) → AavegotchiInfo
    {
        "inputs": [{"name": "_tokenId", "type": "uint256"}],
        "name": "getAavegotchi",
        "outputs": [
            {
                "components": [{"name": n, "type": t} for n, t in GOTCHI_FIELDS],
                "name": "aavegotchiInfo_",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    # interact(uint256[]), pets every token in one tx
    {
        "inputs": [{"name": "_tokenIds", "type": "uint256[]"}],
        "name": "interact",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def record_from_struct(raw) -> GotchiRecord:
    """Map a getAavegotchi() result (tuple or mapping) to a GotchiRecord."""
    if isinstance(raw, dict):
        data = raw
    else:
        data = dict(zip((n for n, _ in GOTCHI_FIELDS), raw))
    return GotchiRecord(
        token_id=int(data["tokenId"]),
        name=str(data.get("name", "")),
        owner=str(data.get("owner", "")),
        status=int(data.get("status", 0)),
        kinship=int(data.get("kinship", 0)),
        last_interacted=int(data["lastInteracted"]),
        experience=int(data.get("experience", 0)),
        level=int(data.get("level", 0)),
        haunt_id=int(data.get("hauntId", 0)),
        locked=bool(data.get("locked", False)),
    )


# ============================================================
# LEDGER
# ============================================================

class GotchiLedger(LedgerClient):
    """
    Usage:
        ledger = GotchiLedger()
        if ledger.initialize(private_key, diamond_address, rpc_urls):
            ids = await ledger.enumerate_ids(owner)
            tx_hash = await ledger.submit_action(ids)
    """

    def __init__(self):
        self._initialized: bool = False
        self._private_key: str = ""
        self._address: str = ""
        self._w3 = None
        self._contract = None
        self._rpc_url: str = ""
        self._tx_count: int = 0
        self._last_error: str = ""

    def initialize(
        self,
        private_key: str,
        diamond_address: str,
        rpc_urls: Sequence[str],
    ) -> bool:
        """Connect to the first reachable RPC and bind the diamond contract."""
        try:
            self._address = Account.from_key(private_key).address
        except Exception as e:
            logger.error(f"Invalid PRIVATE_KEY: {e}")
            return False
        self._private_key = private_key

        for rpc_url in rpc_urls:
            try:
                w3 = Web3(Web3.HTTPProvider(
                    rpc_url, request_kwargs={"timeout": TIMINGS.RPC_TIMEOUT_SECONDS}
                ))
                if not w3.is_connected():
                    logger.warning(f"Cannot connect to Base RPC ({rpc_url}), trying next")
                    continue
            except Exception as e:
                logger.warning(f"Failed to initialize RPC {rpc_url}: {e}")
                continue

            self._w3 = w3
            self._rpc_url = rpc_url
            self._contract = w3.eth.contract(
                address=Web3.to_checksum_address(diamond_address),
                abi=DIAMOND_ABI,
            )
            self._initialized = True
            logger.info(
                f"GotchiLedger connected: {rpc_url} | diamond={diamond_address[:10]}... | "
                f"bot={self._address[:10]}..."
            )
            return True

        logger.error(f"GotchiLedger: none of {len(rpc_urls)} RPC URLs reachable")
        return False

    @property
    def account_address(self) -> str:
        return self._address

    async def _call(self, fn):
        return await asyncio.get_running_loop().run_in_executor(None, fn)

    # ============================================================
    # READS
    # ============================================================

    async def enumerate_ids(self, owner: str) -> list[int]:
        try:
            checksum = Web3.to_checksum_address(owner)
            raw = await self._call(self._contract.functions.tokenIdsOfOwner(checksum).call)
        except Exception as e:
            self._last_error = f"tokenIdsOfOwner: {e}"
            raise FetchError(f"Failed to fetch Aavegotchis: {e}") from e
        return [int(i) for i in raw]

    async def fetch_detail(self, token_id: int) -> GotchiRecord:
        try:
            raw = await self._call(self._contract.functions.getAavegotchi(int(token_id)).call)
            return record_from_struct(raw)
        except Exception as e:
            raise FetchError(f"Failed to fetch Aavegotchi {token_id}: {e}") from e

    async def check_connectivity(self) -> bool:
        if self._w3 is None:
            return False
        try:
            block = await self._call(lambda: self._w3.eth.block_number)
            logger.debug(f"Connection check successful (block {block})")
            return True
        except Exception as e:
            logger.error(f"Connection check failed: {e}")
            self._last_error = f"connectivity: {e}"
            return False

    async def get_latest_block(self) -> int:
        return int(await self._call(lambda: self._w3.eth.block_number))

    async def estimate_interact_gas(self, token_ids: Sequence[int]) -> int:
        ids = [int(i) for i in token_ids]
        try:
            return int(await self._call(
                lambda: self._contract.functions.interact(ids).estimate_gas({"from": self._address})
            ))
        except Exception as e:
            raise SubmissionError(f"Failed to estimate gas: {e}") from e

    # ============================================================
    # WRITE
    # ============================================================

    async def submit_action(self, token_ids: Sequence[int]) -> str:
        """Send interact(token_ids), wait for the receipt, return the tx hash."""
        if not self._initialized:
            raise SubmissionError("ledger not initialized")

        ids = [int(i) for i in token_ids]
        logger.info(f"Initiating pet interaction for {len(ids)} tokens")
        w3 = self._w3

        def _execute():
            nonce = w3.eth.get_transaction_count(self._address)
            tx = self._contract.functions.interact(ids).build_transaction({
                "from": self._address,
                "nonce": nonce,
                "gasPrice": w3.eth.gas_price,
                "chainId": BASE_CHAIN["chain_id"],
            })

            # Gas estimation + 20% buffer
            try:
                tx["gas"] = int(w3.eth.estimate_gas(tx) * TIMINGS.GAS_BUFFER)
            except Exception as gas_err:
                logger.warning(f"Gas estimation failed, using default 200k + 50k/token: {gas_err}")
                tx["gas"] = 200_000 + 50_000 * len(ids)

            signed = w3.eth.account.sign_transaction(tx, self._private_key)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=TIMINGS.RECEIPT_TIMEOUT_SECONDS
            )
            return receipt, tx_hash.hex()

        try:
            receipt, tx_hash_hex = await self._call(_execute)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            self._last_error = error
            logger.warning(f"TX ERROR: {error}")
            raise SubmissionError(f"Failed to pet Aavegotchis: {error}") from e

        if not tx_hash_hex.startswith("0x"):
            tx_hash_hex = "0x" + tx_hash_hex

        if receipt["status"] != 1:
            error = f"TX reverted: {tx_hash_hex}"
            self._last_error = error
            logger.warning(f"TX FAILED: {error}")
            raise SubmissionError(error)

        self._tx_count += 1
        gas_used = receipt.get("gasUsed", 0)
        gas_price_wei = receipt.get("effectiveGasPrice", 0)
        cost_eth = (gas_used * gas_price_wei) / 1e18 if gas_price_wei else 0.0
        logger.info(
            f"TX SUCCESS: {tx_hash_hex[:16]}... | block={receipt.get('blockNumber')} | "
            f"gas={gas_used} | cost={cost_eth:.8f} ETH"
        )
        return tx_hash_hex

    # ============================================================
    # STATUS
    # ============================================================

    def get_explorer_url(self, tx_hash: str) -> str:
        return f"{BASE_CHAIN['explorer']}/tx/{tx_hash}"

    def get_status(self) -> dict:
        return {
            "initialized": self._initialized,
            "bot_address": self._address[:10] + "..." if self._address else "",
            "rpc_url": self._rpc_url,
            "tx_count": self._tx_count,
            "last_error": self._last_error,
        }
