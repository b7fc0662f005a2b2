"""Tests for ActionExecutor: single batch submit, control tx, counters, notifications."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeClock, FakeLedger, RecordingNotifier, gotchi
from sitter.errors import SubmissionError
from sitter.executor import ActionExecutor
from sitter.models import BotState, NotificationKind, VerificationResult
from sitter.verifier import InteractionVerifier

NOW = 50_000


def _make(ledger, notifier=None, verifier=None):
    clock = FakeClock(NOW)
    state = BotState(target="0xtarget")
    notifier = notifier or RecordingNotifier()
    executor = ActionExecutor(
        ledger,
        notifier,
        verifier or InteractionVerifier(ledger, clock=clock),
        state,
        clock=clock,
        settle_delay=0,
        control_delay=0,
    )
    return executor, state, notifier


async def _drain(executor):
    await asyncio.gather(*executor.control_tasks)


class TestVerifiedSuccess:
    @pytest.mark.asyncio
    async def test_counts_and_notifies(self):
        ledger = FakeLedger(ids=[1, 2], records=[gotchi(1, 1000), gotchi(2, 1000)])
        ledger.touch_on_submit = NOW
        executor, state, notifier = _make(ledger)

        outcome = await executor.pet_all([1, 2], 1000)

        assert outcome.success is True
        assert outcome.pet_count == 2
        assert outcome.verified_count == 2
        assert outcome.tx_hash == f"0x{1:064x}"
        assert state.total_pets == 1
        assert state.last_pet_time == NOW
        assert state.errors == 0

        successes = notifier.of_kind(NotificationKind.SUCCESS)
        assert len(successes) == 1
        assert "Successfully petted 2 Aavegotchis" in successes[0][1]
        assert "Verified: 2 tokens" in successes[0][1]
        assert successes[0][2] == outcome.tx_hash
        await _drain(executor)

    @pytest.mark.asyncio
    async def test_single_submission_covers_all_ids(self):
        ledger = FakeLedger(ids=[1, 2, 3], records=[gotchi(2, 1000)])
        ledger.touch_on_submit = NOW
        executor, _, _ = _make(ledger)

        await executor.pet_all([1, 2, 3], 1000)

        # Primary only; control hasn't been awaited yet
        assert ledger.submissions[0] == [1, 2, 3]
        await _drain(executor)

    @pytest.mark.asyncio
    async def test_targets_everything_when_no_detail_readable(self):
        ledger = FakeLedger(ids=[1, 2, 3, 4, 5])
        executor, state, _ = _make(ledger)

        outcome = await executor.pet_all([1, 2, 3, 4, 5], None)
        await _drain(executor)

        assert ledger.submissions[0] == [1, 2, 3, 4, 5]
        # Nothing readable → nothing verifiable
        assert outcome.success is False
        assert state.errors == 0


class TestControlTransaction:
    @pytest.mark.asyncio
    async def test_control_resubmits_same_ids(self):
        ledger = FakeLedger(ids=[4, 5], records=[gotchi(4, 1000), gotchi(5, 1000)])
        ledger.touch_on_submit = NOW
        executor, _, notifier = _make(ledger)

        outcome = await executor.pet_all([4, 5], 1000)
        await _drain(executor)

        assert ledger.submissions == [[4, 5], [4, 5]]
        infos = notifier.of_kind(NotificationKind.INFO)
        assert len(infos) == 1
        assert "Control transaction sent for 2 Aavegotchis" in infos[0][1]
        assert outcome.tx_hash in infos[0][1]

    @pytest.mark.asyncio
    async def test_control_failure_does_not_touch_outcome(self):
        ledger = FakeLedger(ids=[1], records=[gotchi(1, 1000)])
        ledger.touch_on_submit = NOW
        ledger.submit_effects = [None, SubmissionError("nonce too low")]
        executor, state, notifier = _make(ledger)

        outcome = await executor.pet_all([1], 1000)
        await _drain(executor)

        assert outcome.success is True
        assert state.total_pets == 1
        assert state.errors == 0
        errors = notifier.of_kind(NotificationKind.ERROR)
        assert len(errors) == 1
        assert "Control transaction failed for 1 Aavegotchi" in errors[0][1]
        assert "nonce too low" in errors[0][1]
        # Not retried
        assert len(ledger.submissions) == 2

    @pytest.mark.asyncio
    async def test_control_spawned_even_when_verification_fails(self):
        ledger = FakeLedger(ids=[1], records=[gotchi(1, 1000)])
        executor, _, _ = _make(ledger)

        await executor.pet_all([1], 1000)
        await _drain(executor)

        assert len(ledger.submissions) == 2


class TestFailures:
    @pytest.mark.asyncio
    async def test_submission_error(self):
        ledger = FakeLedger(ids=[1, 2], records=[gotchi(1, 1000)])
        ledger.submit_effects = [SubmissionError("TX reverted: 0xdead")]
        executor, state, notifier = _make(ledger)

        outcome = await executor.pet_all([1, 2], 1000)

        assert outcome.success is False
        assert outcome.pet_count == 0
        assert "TX reverted" in outcome.error
        assert state.errors == 1
        assert state.total_pets == 0
        assert notifier.of_kind(NotificationKind.SUCCESS) == []
        errors = notifier.of_kind(NotificationKind.ERROR)
        assert len(errors) == 1
        assert "Failed to pet 2 Aavegotchis" in errors[0][1]
        # No verification, no control
        assert executor.control_tasks == frozenset()
        assert len(ledger.submissions) == 1

    @pytest.mark.asyncio
    async def test_unverified_is_not_an_error(self):
        ledger = FakeLedger(ids=[1], records=[gotchi(1, 1000)])
        executor, state, notifier = _make(ledger)

        outcome = await executor.pet_all([1], 1000)
        await _drain(executor)

        assert outcome.success is False
        assert outcome.pet_count == 0
        assert outcome.tx_hash is not None
        assert "cooldown" in outcome.error
        assert state.errors == 0
        assert state.total_pets == 0
        assert notifier.of_kind(NotificationKind.SUCCESS) == []

    @pytest.mark.asyncio
    async def test_assumed_verification_is_tracked(self):
        ledger = FakeLedger(ids=[1])
        verifier = MagicMock()
        verifier.verify = AsyncMock(
            return_value=VerificationResult(success=True, updated_ids=(), assumed=True)
        )
        executor, state, notifier = _make(ledger, verifier=verifier)

        outcome = await executor.pet_all([1], None)
        await _drain(executor)

        verifier.verify.assert_awaited_once_with([1], None)
        assert outcome.success is True
        assert outcome.verified_count == 0
        assert state.assumed_verifications == 1
        assert state.errors == 0
        assert len(notifier.of_kind(NotificationKind.SUCCESS)) == 1
