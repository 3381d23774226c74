"""
profile.py - Participant Profiles

One profile per participant, stored at profile_address(owner). The profile
tracks lifetime totals and the daily activity streak.

Streak rules (by UTC calendar day; last_active_day starts at profile creation):
    same day as last activity -> unchanged (1 if it was still 0)
    next calendar day         -> streak + 1
    any longer gap            -> streak = 1
    best_streak               -> max(best_streak, streak)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Tuple

from ..addresses import profile_address, registry_address
from ..core import (
    LedgerView, PendingTransaction, Unit, UnitStateChange,
    UNIT_TYPE_PROFILE,
    AccountNotFound, DuplicateProfile,
    build_transaction, create_record_unit, day_gap, user_origin,
)
from .registry import load_registry


@dataclass(frozen=True, slots=True)
class ProfileRecord:
    owner: str
    created_at: datetime
    last_active_day: datetime
    total_sessions_completed: int = 0
    total_rewards_earned: Decimal = Decimal("0")
    current_streak: int = 0
    best_streak: int = 0


def to_state_dict(record: ProfileRecord) -> Dict[str, Any]:
    return {
        'owner': record.owner,
        'created_at': record.created_at,
        'total_sessions_completed': record.total_sessions_completed,
        'total_rewards_earned': record.total_rewards_earned,
        'current_streak': record.current_streak,
        'best_streak': record.best_streak,
        'last_active_day': record.last_active_day,
    }


def load_profile(view: LedgerView, owner: str) -> ProfileRecord:
    """
    Load ``owner``'s profile.

    Raises:
        AccountNotFound: If the owner has no profile
    """
    address = profile_address(owner)
    if not view.has_unit(address) or view.get_unit(address).unit_type != UNIT_TYPE_PROFILE:
        raise AccountNotFound(f"no profile for {owner}")
    raw = view.get_unit_state(address)
    return ProfileRecord(
        owner=raw['owner'],
        created_at=raw['created_at'],
        last_active_day=raw['last_active_day'],
        total_sessions_completed=raw.get('total_sessions_completed', 0),
        total_rewards_earned=Decimal(raw.get('total_rewards_earned', 0)),
        current_streak=raw.get('current_streak', 0),
        best_streak=raw.get('best_streak', 0),
    )


def create_profile_unit(record: ProfileRecord) -> Unit:
    return create_record_unit(
        address=profile_address(record.owner),
        name=f"Focus Profile {record.owner}",
        unit_type=UNIT_TYPE_PROFILE,
        state=to_state_dict(record),
    )


# ============================================================================
# STREAKS
# ============================================================================

def calculate_streak(
    current_streak: int,
    best_streak: int,
    last_active_day: datetime,
    now: datetime,
) -> Tuple[int, int]:
    """
    Apply one completed session at ``now`` to a streak.

    A completion on the same calendar day as ``last_active_day`` keeps the
    streak, except that it lifts a zero streak to 1: the first completion
    on the day a profile is created counts as day one. Leaving it at 0
    would follow the literal "same day, unchanged" rule instead.

    Returns:
        (current_streak, best_streak) after the session.
    """
    gap = day_gap(now, last_active_day)
    if gap == 0:
        streak = max(current_streak, 1)
    elif gap == 1:
        streak = current_streak + 1
    else:
        streak = 1
    return streak, max(best_streak, streak)


def record_completed_session(profile: ProfileRecord, now: datetime) -> ProfileRecord:
    """Return the profile after one more completed session at ``now``."""
    streak, best = calculate_streak(
        profile.current_streak, profile.best_streak, profile.last_active_day, now
    )
    return replace(
        profile,
        total_sessions_completed=profile.total_sessions_completed + 1,
        current_streak=streak,
        best_streak=best,
        last_active_day=now,
    )


# ============================================================================
# OPERATIONS
# ============================================================================

def compute_create_profile(view: LedgerView, owner: str) -> PendingTransaction:
    """
    Create ``owner``'s profile and count them as a participant.

    Raises:
        ValueError: If owner is empty
        AccountNotFound: If the registry has not been created
        DuplicateProfile: If the owner already has a profile
    """
    if not owner or not owner.strip():
        raise ValueError("owner cannot be empty")
    registry = load_registry(view)

    address = profile_address(owner)
    if view.has_unit(address):
        raise DuplicateProfile(owner)

    now = view.current_time
    record = ProfileRecord(owner=owner, created_at=now, last_active_day=now)

    reg_address = registry_address()
    reg_state = view.get_unit_state(reg_address)
    new_reg_state = {
        **reg_state,
        'total_participants': registry.total_participants + 1,
    }

    wallets = () if owner in view.list_wallets() else (owner,)

    return build_transaction(
        view,
        moves=[],
        state_changes=[UnitStateChange(unit=reg_address, old_state=reg_state, new_state=new_reg_state)],
        origin=user_origin(owner, address, "CREATE_PROFILE"),
        units_to_create=(create_profile_unit(record),),
        wallets_to_create=wallets,
    )
