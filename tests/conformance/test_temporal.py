"""
Temporal Conformance Tests

INVARIANT: Every time gate is enforced against the ledger clock.

    ∀ session S started at t0 (slot s0), completed at t1 (slot s1):
        completion succeeds ⟹ t1 - t0 >= min_session_duration
                            ∧ s1 - s0 >= expected_slots - slot_tolerance
    ∀ consecutive starts at t0 < t1 on one commitment:
        t1 - last_session_timestamp >= min_session_spacing
    ∀ claim at t: t >= end_timestamp

This ensures:
- Time and slots only advance forward
- Transactions log their execution time and slot
- No session, spacing or settlement gate can be beaten by the clock
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from datetime import timedelta

from focusledger import (
    ExecuteResult, build_transaction, Move, SYSTEM_WALLET,
    compute_start_session, compute_complete_session, compute_claim_rewards,
    SessionNotComplete, SessionTooSoon, CommitmentNotEnded, CommitmentEnded,
    DailySessionsCompleted,
)
from tests.conftest import (
    START, ASSET, STAKE, SESSION_LENGTH, SESSION_SPACING,
    make_ledger, make_program, run_session,
)


def fresh_commitment(per_day=2, days=2):
    ledger = make_ledger()
    program = make_program(ledger)
    program.create_profile("alice")
    commitment = program.open_commitment("alice", 1, STAKE, per_day, days)
    return ledger, program, commitment


class TestTemporalOrdering:

    def test_transaction_log_records_time_and_slot(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        start_tx, complete_tx = ledger.transaction_log[-2:]
        assert start_tx.origin.event_type == "START_SESSION"
        assert complete_tx.origin.event_type == "COMPLETE_SESSION"
        assert complete_tx.execution_time - start_tx.execution_time == SESSION_LENGTH
        assert complete_tx.execution_slot - start_tx.execution_slot == 8250
        assert complete_tx.sequence_number > start_tx.sequence_number

    def test_log_times_never_decrease(self, commitment, program, ledger):
        for session_id in range(4):
            if session_id == 2:
                ledger.advance_time(START + timedelta(days=1))
            run_session(ledger, program, "alice", commitment, session_id)
        times = [tx.execution_time for tx in ledger.transaction_log]
        slots = [tx.execution_slot for tx in ledger.transaction_log]
        assert times == sorted(times)
        assert slots == sorted(slots)

    def test_time_cannot_go_backwards(self, ledger):
        ledger.advance_time(START + timedelta(hours=1))
        with pytest.raises(ValueError):
            ledger.advance_time(START)

    def test_future_transaction_rejected(self, program, ledger):
        later = ledger.clone()
        later.advance_time(START + timedelta(hours=1))
        pending = build_transaction(later, [Move(STAKE, ASSET, SYSTEM_WALLET, "bob", "mint")])
        assert ledger.execute(pending) == ExecuteResult.REJECTED
        assert ledger.last_rejection == "future timestamp"


class TestTimeGates:

    def test_claim_gate_is_end_timestamp(self, commitment, ledger):
        ledger.advance_time(START + timedelta(days=2) - timedelta(microseconds=1))
        with pytest.raises(CommitmentNotEnded):
            compute_claim_rewards(ledger, "alice", commitment)
        ledger.advance_time(START + timedelta(days=2))
        compute_claim_rewards(ledger, "alice", commitment)

    def test_start_gate_is_end_timestamp(self, commitment, ledger):
        ledger.advance_time(START + timedelta(days=2) - timedelta(microseconds=1))
        compute_start_session(ledger, "alice", commitment, 0)
        ledger.advance_time(START + timedelta(days=2))
        with pytest.raises(CommitmentEnded):
            compute_start_session(ledger, "alice", commitment, 0)

    def test_day_rollover_at_utc_midnight(self):
        ledger, program, commitment = fresh_commitment(per_day=1, days=3)
        ledger.advance_time(START.replace(hour=22))
        run_session(ledger, program, "alice", commitment, 0)
        # 23:25: quota filled for today
        assert ledger.current_time.date() == START.date()
        ledger.advance_time(START.replace(hour=23, minute=59, second=59))
        with pytest.raises(DailySessionsCompleted) as exc:
            compute_start_session(ledger, "alice", commitment, 1)
        assert exc.value.retry_after == timedelta(seconds=1)
        ledger.advance_time(START.replace(hour=0) + timedelta(days=1))
        assert ledger.execute(compute_start_session(ledger, "alice", commitment, 1)) == ExecuteResult.APPLIED


class TestTemporalProperties:

    @given(st.integers(min_value=0, max_value=120))
    @settings(max_examples=60, deadline=None)
    def test_completion_iff_duration_reached(self, minutes):
        """
        PROPERTY: Completion succeeds exactly when 55 minutes have elapsed.
        """
        ledger, program, commitment = fresh_commitment()
        session = program.start_session("alice", commitment, 0)
        ledger.advance_time(START + timedelta(minutes=minutes))

        if minutes >= 55:
            assert ledger.execute(compute_complete_session(ledger, "alice", session)) == ExecuteResult.APPLIED
        else:
            with pytest.raises(SessionNotComplete) as exc:
                compute_complete_session(ledger, "alice", session)
            assert exc.value.retry_after == SESSION_LENGTH - timedelta(minutes=minutes)

    @given(st.integers(min_value=0, max_value=9000))
    @settings(max_examples=60, deadline=None)
    def test_completion_iff_slots_reached(self, slot):
        """
        PROPERTY: With the clock satisfied, completion succeeds exactly when
        the slot counter has advanced by at least 8240 slots.
        """
        ledger, program, commitment = fresh_commitment()
        session = program.start_session("alice", commitment, 0)
        ledger.advance_time(START + SESSION_LENGTH, slot=slot)

        if slot >= 8240:
            assert ledger.execute(compute_complete_session(ledger, "alice", session)) == ExecuteResult.APPLIED
        else:
            with pytest.raises(SessionNotComplete):
                compute_complete_session(ledger, "alice", session)

    @given(st.integers(min_value=0, max_value=60))
    @settings(max_examples=60, deadline=None)
    def test_spacing_iff_interval_reached(self, minutes):
        """
        PROPERTY: A new session may start exactly when 30 minutes have passed
        since the last start or completion.
        """
        ledger, program, commitment = fresh_commitment()
        session = program.start_session("alice", commitment, 0)
        ledger.advance_time(START + SESSION_LENGTH)
        program.complete_session("alice", session)
        ledger.advance_time(START + SESSION_LENGTH + timedelta(minutes=minutes))

        if minutes >= 30:
            assert ledger.execute(compute_start_session(ledger, "alice", commitment, 1)) == ExecuteResult.APPLIED
        else:
            with pytest.raises(SessionTooSoon) as exc:
                compute_start_session(ledger, "alice", commitment, 1)
            assert exc.value.retry_after == SESSION_SPACING - timedelta(minutes=minutes)
