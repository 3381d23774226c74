"""
test_sessions.py - Unit tests for the session state machine

Tests:
- compute_start_session: record contents, every precondition and its order
- Day rollover and daily quota
- Spacing (including abandoned starts)
- compute_complete_session: dual duration check, authority, counters
- Quota re-checked at completion
"""

import pytest
from datetime import timedelta

from focusledger import (
    ExecuteResult,
    compute_start_session, compute_complete_session,
    load_session, load_commitment, load_profile,
    session_address, commitment_address,
    CommitmentInactive, CommitmentEnded, InvalidAuthority, DailySessionsCompleted,
    SessionTooSoon, DuplicateSession, SessionNotComplete, SlotVerificationFailed,
    SessionAlreadyCompleted, AccountNotFound,
)
from tests.conftest import (
    START, STAKE, SESSION_LENGTH, SESSION_SPACING, advance, run_session,
)


# ============================================================================
# START
# ============================================================================

class TestStartSession:

    def test_creates_started_record(self, commitment, ledger):
        advance(ledger, timedelta(minutes=5))
        pending = compute_start_session(ledger, "alice", commitment, 0)
        assert ledger.execute(pending) == ExecuteResult.APPLIED

        session = load_session(ledger, session_address(commitment, 0))
        assert session.user == "alice"
        assert session.commitment == commitment
        assert session.session_number == 0
        assert session.start_timestamp == START + timedelta(minutes=5)
        assert session.verification_slot == ledger.current_slot == 750
        assert not session.completed
        assert session.end_timestamp is None

    def test_no_credit_until_completion(self, commitment, program, ledger):
        program.start_session("alice", commitment, 0)
        record = load_commitment(ledger, commitment)
        assert record.sessions_completed == 0
        assert record.sessions_completed_today == 0
        assert record.last_session_timestamp == START
        assert load_profile(ledger, "alice").total_sessions_completed == 0

    def test_inactive_commitment(self, commitment, program, ledger):
        ledger.advance_time(START + timedelta(days=2))
        program.claim_rewards("alice", commitment)
        with pytest.raises(CommitmentInactive):
            compute_start_session(ledger, "alice", commitment, 0)

    def test_window_ended(self, commitment, ledger):
        ledger.advance_time(START + timedelta(days=2))
        with pytest.raises(CommitmentEnded):
            compute_start_session(ledger, "alice", commitment, 0)

    def test_window_checked_before_authority(self, commitment, ledger):
        ledger.advance_time(START + timedelta(days=2))
        with pytest.raises(CommitmentEnded):
            compute_start_session(ledger, "bob", commitment, 0)

    def test_non_owner(self, commitment, ledger):
        with pytest.raises(InvalidAuthority):
            compute_start_session(ledger, "bob", commitment, 0)

    def test_daily_quota(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        run_session(ledger, program, "alice", commitment, 1)
        # now 11:50 on day one
        with pytest.raises(DailySessionsCompleted) as exc:
            compute_start_session(ledger, "alice", commitment, 2)
        assert exc.value.retry_after == timedelta(hours=12, minutes=10)

    def test_quota_resets_next_day(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        run_session(ledger, program, "alice", commitment, 1)
        ledger.advance_time(START + timedelta(days=1))
        program.start_session("alice", commitment, 2)
        assert load_commitment(ledger, commitment).sessions_completed_today == 0

    def test_spacing(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        advance(ledger, SESSION_LENGTH)
        program.complete_session("alice", session)
        advance(ledger, timedelta(minutes=20))
        with pytest.raises(SessionTooSoon) as exc:
            compute_start_session(ledger, "alice", commitment, 1)
        assert exc.value.retry_after == timedelta(minutes=10)

    def test_spacing_counts_abandoned_starts(self, commitment, program, ledger):
        program.start_session("alice", commitment, 0)
        advance(ledger, timedelta(minutes=10))
        with pytest.raises(SessionTooSoon):
            compute_start_session(ledger, "alice", commitment, 1)
        advance(ledger, timedelta(minutes=20))
        assert ledger.execute(compute_start_session(ledger, "alice", commitment, 1)) == ExecuteResult.APPLIED

    def test_first_session_needs_no_spacing(self, commitment, ledger):
        # the commitment was opened this very instant
        assert ledger.execute(compute_start_session(ledger, "alice", commitment, 0)) == ExecuteResult.APPLIED

    def test_duplicate_session_id(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        with pytest.raises(DuplicateSession):
            compute_start_session(ledger, "alice", commitment, 0)

    def test_quota_checked_before_spacing(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        session = program.start_session("alice", commitment, 1)
        advance(ledger, SESSION_LENGTH)
        program.complete_session("alice", session)
        with pytest.raises(DailySessionsCompleted):
            compute_start_session(ledger, "alice", commitment, 2)

    def test_unknown_commitment(self, program, ledger):
        with pytest.raises(AccountNotFound):
            compute_start_session(ledger, "alice", commitment_address("alice", 5), 0)

    def test_invalid_session_id(self, commitment, ledger):
        with pytest.raises(ValueError):
            compute_start_session(ledger, "alice", commitment, -1)


# ============================================================================
# COMPLETE
# ============================================================================

class TestCompleteSession:

    def test_too_early(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        advance(ledger, timedelta(minutes=50))
        with pytest.raises(SessionNotComplete) as exc:
            compute_complete_session(ledger, "alice", session)
        assert not isinstance(exc.value, SlotVerificationFailed)
        assert exc.value.retry_after == timedelta(minutes=5)

    def test_slot_counter_lagging(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        # wall clock moves 55 minutes but the ledger only made 100 slots of progress
        ledger.advance_time(START + SESSION_LENGTH, slot=100)
        with pytest.raises(SlotVerificationFailed) as exc:
            compute_complete_session(ledger, "alice", session)
        assert exc.value.retry_after == timedelta(milliseconds=400) * 8140

    def test_slot_tolerance(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        ledger.advance_time(START + SESSION_LENGTH, slot=8240)
        assert ledger.execute(compute_complete_session(ledger, "alice", session)) == ExecuteResult.APPLIED

    def test_slot_failure_is_a_session_not_complete(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        ledger.advance_time(START + SESSION_LENGTH, slot=8239)
        with pytest.raises(SessionNotComplete):
            compute_complete_session(ledger, "alice", session)

    def test_non_user(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        advance(ledger, SESSION_LENGTH)
        with pytest.raises(InvalidAuthority):
            compute_complete_session(ledger, "bob", session)

    def test_duration_checked_before_authority(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        with pytest.raises(SessionNotComplete):
            compute_complete_session(ledger, "bob", session)

    def test_already_completed(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        advance(ledger, SESSION_LENGTH)
        program.complete_session("alice", session)
        with pytest.raises(SessionAlreadyCompleted):
            compute_complete_session(ledger, "alice", session)
        with pytest.raises(SessionAlreadyCompleted):
            compute_complete_session(ledger, "bob", session)

    def test_marks_completed(self, commitment, program, ledger):
        session = program.start_session("alice", commitment, 0)
        advance(ledger, SESSION_LENGTH)
        ledger.execute(compute_complete_session(ledger, "alice", session))
        record = load_session(ledger, session)
        assert record.completed
        assert record.end_timestamp == START + SESSION_LENGTH
        assert record.end_slot == 8250

    def test_commitment_counters(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        record = load_commitment(ledger, commitment)
        assert record.sessions_completed_today == 1
        assert record.sessions_completed == 1
        assert record.days_completed == 0
        assert record.last_session_timestamp == START + SESSION_LENGTH

        run_session(ledger, program, "alice", commitment, 1)
        record = load_commitment(ledger, commitment)
        assert record.sessions_completed_today == 2
        assert record.sessions_completed == 2
        assert record.days_completed == 1

    def test_profile_counters(self, commitment, program, ledger):
        run_session(ledger, program, "alice", commitment, 0)
        profile = load_profile(ledger, "alice")
        assert profile.total_sessions_completed == 1
        assert profile.current_streak == 1
        assert profile.best_streak == 1
        assert profile.last_active_day == START + SESSION_LENGTH

        run_session(ledger, program, "alice", commitment, 1)
        assert load_profile(ledger, "alice").current_streak == 1

        ledger.advance_time(START + timedelta(days=1))
        run_session(ledger, program, "alice", commitment, 2)
        profile = load_profile(ledger, "alice")
        assert profile.total_sessions_completed == 3
        assert profile.current_streak == 2
        assert profile.best_streak == 2

    def test_quota_rechecked_at_completion(self, program, ledger, alice_profile):
        commitment = program.open_commitment("alice", 1, STAKE, 1, 2)
        first = program.start_session("alice", commitment, 0)
        advance(ledger, SESSION_SPACING)
        second = program.start_session("alice", commitment, 1)
        advance(ledger, SESSION_LENGTH)
        program.complete_session("alice", first)
        advance(ledger, SESSION_SPACING)
        with pytest.raises(DailySessionsCompleted):
            compute_complete_session(ledger, "alice", second)
        assert load_commitment(ledger, commitment).sessions_completed_today == 1

    def test_completion_after_window_allowed(self, program, ledger, alice_profile):
        commitment = program.open_commitment("alice", 1, STAKE, 1, 1)
        ledger.advance_time(START + timedelta(days=1) - timedelta(minutes=10))
        session = program.start_session("alice", commitment, 0)
        advance(ledger, SESSION_LENGTH)
        assert ledger.execute(compute_complete_session(ledger, "alice", session)) == ExecuteResult.APPLIED
        assert load_commitment(ledger, commitment).sessions_completed == 1

    def test_settled_commitment(self, commitment, program, ledger):
        ledger.advance_time(START + timedelta(days=2) - timedelta(minutes=20))
        session = program.start_session("alice", commitment, 0)
        advance(ledger, timedelta(minutes=20))
        program.claim_rewards("alice", commitment)
        advance(ledger, timedelta(minutes=35))
        with pytest.raises(CommitmentInactive):
            compute_complete_session(ledger, "alice", session)

    def test_unknown_session(self, commitment, ledger):
        with pytest.raises(AccountNotFound):
            compute_complete_session(ledger, "alice", session_address(commitment, 3))

    def test_passing_commitment_as_session(self, commitment, ledger):
        with pytest.raises(AccountNotFound):
            compute_complete_session(ledger, "alice", commitment)
