"""
Pet Sitter data types.

Records and outcomes are frozen: a GotchiRecord is a snapshot of one read and
is rebuilt on every fetch. BotState is the only mutable structure and is owned
by the scheduler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NotificationKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


# ============================================================
# ON-CHAIN SNAPSHOTS
# ============================================================

@dataclass(frozen=True)
class GotchiRecord:
    """One getAavegotchi() read."""
    token_id: int
    last_interacted: int          # unix seconds
    status: int = 0               # 0 = unclaimed portal
    name: str = ""
    owner: str = ""
    kinship: int = 0
    experience: int = 0
    level: int = 0
    haunt_id: int = 0
    locked: bool = False

    @property
    def claimed(self) -> bool:
        return self.status != 0


@dataclass(frozen=True)
class GotchiBatch:
    """
    Result of one enumerate + fetch pass over the target owner.

    all_ids is authoritative: it is what gets petted, whether or not the
    detail reads succeeded. shared_last_interacted comes from the first
    claimed record in enumeration order.
    """
    owner: str
    all_ids: tuple[int, ...] = ()
    fetched_records: tuple[GotchiRecord, ...] = ()
    shared_last_interacted: Optional[int] = None

    @property
    def has_shared_timing(self) -> bool:
        return self.shared_last_interacted is not None


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class VerificationResult:
    success: bool
    updated_ids: tuple[int, ...] = ()
    # True when verification itself broke and success was assumed
    assumed: bool = False


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one primary interact submission."""
    success: bool
    pet_count: int = 0
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    verified_count: int = 0


# ============================================================
# PROCESS STATE
# ============================================================

@dataclass
class BotState:
    """Runtime counters. Times are unix seconds."""
    target: str = ""
    running: bool = False
    total_pets: int = 0
    errors: int = 0
    last_pet_time: Optional[float] = None
    next_pet_time: Optional[float] = None
    assumed_verifications: int = 0
    started_at: Optional[float] = None
