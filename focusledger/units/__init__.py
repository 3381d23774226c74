"""
Units module - Program records and the operations that create and update them.

Each program record is a ledger unit stored at a derived address:
- Registry: singleton program configuration and aggregate counters
- Profile: one per participant, lifetime totals and streaks
- Commitment: a stake locked against a session schedule
- Session: one timed focus block inside a commitment

All record types and compute functions are re-exported here for convenience.
"""

# Registry
from .registry import (
    RegistryRecord,
    load_registry,
    create_registry_unit,
    compute_create_registry,
    compute_fund_reward_pool,
    validate_amount,
)

# Profiles
from .profile import (
    ProfileRecord,
    load_profile,
    create_profile_unit,
    calculate_streak,
    record_completed_session,
    compute_create_profile,
)

# Commitments
from .commitment import (
    CommitmentRecord,
    load_commitment,
    create_commitment_unit,
    preview_settlement,
    compute_open_commitment,
    compute_claim_rewards,
)

# Sessions
from .session import (
    SessionRecord,
    load_session,
    create_session_unit,
    sessions_today,
    check_duration,
    compute_start_session,
    compute_complete_session,
)
