"""
session.py - Focus Session State Machine

A session is one timed focus block inside a commitment:

    (no record) --start_session--> STARTED --complete_session--> COMPLETED

start_session only opens the record; counters on the commitment and profile
move when the session completes, so an abandoned session earns nothing.

Completion is verified twice: wall-clock time since the start must reach
min_session_duration, and the ledger's slot counter must have advanced by at
least expected_slots - slot_tolerance since the slot captured at start.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..addresses import profile_address, session_address
from ..config import ProgramConfig
from ..core import (
    LedgerView, PendingTransaction, Unit, UnitStateChange,
    UNIT_TYPE_SESSION,
    AccountNotFound, CommitmentEnded, CommitmentInactive, DailySessionsCompleted,
    DuplicateSession, InvalidAuthority, SessionAlreadyCompleted, SessionNotComplete,
    SessionTooSoon, SlotVerificationFailed,
    build_transaction, create_record_unit, day_gap, time_until_next_day, user_origin,
)
from .commitment import CommitmentRecord, load_commitment
from .profile import load_profile, record_completed_session, to_state_dict as profile_state_dict
from .registry import load_registry


@dataclass(frozen=True, slots=True)
class SessionRecord:
    user: str
    commitment: str
    session_number: int
    start_timestamp: datetime
    verification_slot: int
    completed: bool = False
    end_timestamp: Optional[datetime] = None
    end_slot: Optional[int] = None

    @property
    def address(self) -> str:
        return session_address(self.commitment, self.session_number)


def to_state_dict(record: SessionRecord) -> Dict[str, Any]:
    return {
        'user': record.user,
        'commitment': record.commitment,
        'session_number': record.session_number,
        'start_timestamp': record.start_timestamp,
        'verification_slot': record.verification_slot,
        'completed': record.completed,
        'end_timestamp': record.end_timestamp,
        'end_slot': record.end_slot,
    }


def load_session(view: LedgerView, address: str) -> SessionRecord:
    """
    Load the session stored at ``address``.

    Raises:
        AccountNotFound: If there is no session at that address
    """
    if not view.has_unit(address) or view.get_unit(address).unit_type != UNIT_TYPE_SESSION:
        raise AccountNotFound(f"no session at {address}")
    raw = view.get_unit_state(address)
    return SessionRecord(
        user=raw['user'],
        commitment=raw['commitment'],
        session_number=raw['session_number'],
        start_timestamp=raw['start_timestamp'],
        verification_slot=raw['verification_slot'],
        completed=raw.get('completed', False),
        end_timestamp=raw.get('end_timestamp'),
        end_slot=raw.get('end_slot'),
    )


def create_session_unit(record: SessionRecord) -> Unit:
    return create_record_unit(
        address=record.address,
        name=f"Focus Session {record.session_number} of {record.commitment}",
        unit_type=UNIT_TYPE_SESSION,
        state=to_state_dict(record),
    )


def sessions_today(commitment: CommitmentRecord, now: datetime) -> int:
    """Completed-today counter as seen at ``now``, after any day rollover."""
    last = commitment.last_session_timestamp
    if last is not None and day_gap(now, last) != 0:
        return 0
    return commitment.sessions_completed_today


def _check_daily_quota(commitment: CommitmentRecord, today: int, now: datetime) -> None:
    if today >= commitment.sessions_per_day:
        raise DailySessionsCompleted(
            f"{today}/{commitment.sessions_per_day} today",
            retry_after=time_until_next_day(now),
        )


def check_duration(session: SessionRecord, now: datetime, slot: int, config: ProgramConfig) -> None:
    """
    Verify a session has run long enough, by clock and by slot counter.

    Raises:
        SessionNotComplete: If less than min_session_duration has elapsed
        SlotVerificationFailed: If the slot counter has not advanced enough
    """
    elapsed = now - session.start_timestamp
    if elapsed < config.min_session_duration:
        raise SessionNotComplete(
            f"{elapsed} elapsed of {config.min_session_duration}",
            retry_after=config.min_session_duration - elapsed,
        )
    slots_elapsed = slot - session.verification_slot
    if slots_elapsed < config.min_session_slots:
        missing = config.min_session_slots - slots_elapsed
        raise SlotVerificationFailed(
            f"{slots_elapsed} slots elapsed, need {config.min_session_slots}",
            retry_after=config.slot_duration * missing,
        )


# ============================================================================
# START
# ============================================================================

def compute_start_session(
    view: LedgerView,
    caller: str,
    commitment_addr: str,
    session_id: int,
) -> PendingTransaction:
    """
    Open a session record for a commitment.

    Checks, first failure wins: commitment active, window still open, caller
    is the owner, daily quota (after day rollover), spacing since the last
    session, session id unused. The rolled-over daily counter and
    last_session_timestamp are written with the new record.

    Raises:
        ValueError: If session_id is not a non-negative int
        AccountNotFound: If there is no commitment at ``commitment_addr``
        CommitmentInactive, CommitmentEnded, InvalidAuthority,
        DailySessionsCompleted, SessionTooSoon, DuplicateSession
    """
    if isinstance(session_id, bool) or not isinstance(session_id, int) or session_id < 0:
        raise ValueError(f"session_id must be a non-negative integer, got {session_id!r}")
    commitment = load_commitment(view, commitment_addr)
    config = load_registry(view).config
    now = view.current_time

    if not commitment.is_active:
        raise CommitmentInactive(commitment_addr)
    if now >= commitment.end_timestamp:
        raise CommitmentEnded(f"ended at {commitment.end_timestamp}")
    if caller != commitment.owner:
        raise InvalidAuthority(f"{caller} does not own {commitment_addr}")

    today = sessions_today(commitment, now)
    _check_daily_quota(commitment, today, now)

    last = commitment.last_session_timestamp
    if last is not None:
        since_last = now - last
        if since_last < config.min_session_spacing:
            raise SessionTooSoon(
                f"{since_last} since last session",
                retry_after=config.min_session_spacing - since_last,
            )

    address = session_address(commitment_addr, session_id)
    if view.has_unit(address):
        raise DuplicateSession(f"session {session_id} of {commitment_addr}")

    record = SessionRecord(
        user=caller,
        commitment=commitment_addr,
        session_number=session_id,
        start_timestamp=now,
        verification_slot=view.current_slot,
    )

    state = view.get_unit_state(commitment_addr)
    new_state = {
        **state,
        'sessions_completed_today': today,
        'last_session_timestamp': now,
    }

    return build_transaction(
        view,
        moves=[],
        state_changes=[UnitStateChange(unit=commitment_addr, old_state=state, new_state=new_state)],
        origin=user_origin(caller, address, "START_SESSION"),
        units_to_create=(create_session_unit(record),),
    )


# ============================================================================
# COMPLETE
# ============================================================================

def compute_complete_session(
    view: LedgerView,
    caller: str,
    address: str,
) -> PendingTransaction:
    """
    Mark a started session completed and credit the commitment and profile.

    Raises:
        AccountNotFound: If there is no session at ``address``
        SessionAlreadyCompleted: If the session was already completed
        SessionNotComplete: If too little time has passed (retry_after set)
        SlotVerificationFailed: If the slot counter lags the clock (retry_after set)
        InvalidAuthority: If caller is not the session's user
        CommitmentInactive: If the commitment was settled meanwhile
        DailySessionsCompleted: If the day's quota was filled by other sessions
    """
    session = load_session(view, address)
    commitment = load_commitment(view, session.commitment)
    config = load_registry(view).config
    now = view.current_time
    slot = view.current_slot

    if session.completed:
        raise SessionAlreadyCompleted(address)
    check_duration(session, now, slot, config)
    if caller != session.user:
        raise InvalidAuthority(f"{caller} is not the user of {address}")
    if not commitment.is_active:
        raise CommitmentInactive(session.commitment)

    today = sessions_today(commitment, now)
    _check_daily_quota(commitment, today, now)
    today += 1

    sess_state = view.get_unit_state(address)
    new_sess_state = {
        **sess_state,
        'completed': True,
        'end_timestamp': now,
        'end_slot': slot,
    }

    com_state = view.get_unit_state(session.commitment)
    new_com_state = {
        **com_state,
        'sessions_completed_today': today,
        'sessions_completed': commitment.sessions_completed + 1,
        'days_completed': commitment.days_completed + (1 if today == commitment.sessions_per_day else 0),
        'last_session_timestamp': now,
    }

    prof_address = profile_address(session.user)
    profile = load_profile(view, session.user)
    prof_state = view.get_unit_state(prof_address)
    new_prof_state = {**prof_state, **profile_state_dict(record_completed_session(profile, now))}

    return build_transaction(
        view,
        moves=[],
        state_changes=[
            UnitStateChange(unit=address, old_state=sess_state, new_state=new_sess_state),
            UnitStateChange(unit=session.commitment, old_state=com_state, new_state=new_com_state),
            UnitStateChange(unit=prof_address, old_state=prof_state, new_state=new_prof_state),
        ],
        origin=user_origin(caller, address, "COMPLETE_SESSION"),
    )
