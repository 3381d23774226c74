"""
focusledger - Staked focus-commitment program on an atomic ledger

Participants stake tokens against a schedule of timed focus sessions and get
the stake back (plus a bonus, or minus a penalty) according to how much of
the schedule they completed.

Usage:
    from focusledger import Ledger, FocusProgram, token, SYSTEM_WALLET

    ledger = Ledger("main", datetime(2025, 1, 1))
    ledger.register_unit(token("FOCUS", "Focus Token"))
    ledger.register_wallet("alice")
    ledger.execute(build_transaction(ledger, [
        Move(Decimal(500_000_000), "FOCUS", SYSTEM_WALLET, "alice", "mint_alice")
    ]))

    program = FocusProgram(ledger)
    program.create_registry("admin", "FOCUS", reward_rate_percent=10)
    program.create_profile("alice")
    commitment = program.open_commitment("alice", 1, Decimal(100_000_000), 2, 2)
    session = program.start_session("alice", commitment, 0)
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    empty_pending_transaction,
    user_origin,
    Unit,
    UnitStateChange,
    ExecuteResult,
    token,
    create_record_unit,
    protocol_custody_rule,
    calendar_day,
    day_gap,
    time_until_next_day,
    SYSTEM_WALLET,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_REGISTRY,
    UNIT_TYPE_PROFILE,
    UNIT_TYPE_COMMITMENT,
    UNIT_TYPE_SESSION,
)

# Exceptions
from .core import (
    LedgerError,
    TransferRuleViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    TransactionRejected,
    FocusError,
    InvalidSessionCount,
    InvalidDayCount,
    InvalidAmount,
    DuplicateRegistry,
    DuplicateProfile,
    DuplicateCommitment,
    DuplicateSession,
    AccountNotFound,
    InsufficientFunds,
    CommitmentInactive,
    CommitmentEnded,
    CommitmentNotEnded,
    InvalidAuthority,
    DailySessionsCompleted,
    SessionTooSoon,
    SessionNotComplete,
    SlotVerificationFailed,
    SessionAlreadyCompleted,
)

# Ledger
from .ledger import Ledger

# Addressing
from .addresses import (
    derive_address,
    registry_address,
    profile_address,
    commitment_address,
    vault_address,
    session_address,
    vault_authority_address,
    reward_pool_address,
    is_protocol_custody,
)

# Configuration
from .config import (
    ProgramConfig,
    DEFAULT_CONFIG,
    PENALTY_RETAIN,
    PENALTY_SWEEP,
    PENALTY_BURN,
)

# Settlement
from .settlement import (
    SettlementResult,
    TIER_BONUS,
    TIER_REFUND,
    TIER_PENALTY,
    calculate_settlement,
    calculate_required_sessions,
    select_tier,
)

# Program records
from .units import (
    RegistryRecord,
    ProfileRecord,
    CommitmentRecord,
    SessionRecord,
    load_registry,
    load_profile,
    load_commitment,
    load_session,
    compute_create_registry,
    compute_fund_reward_pool,
    compute_create_profile,
    compute_open_commitment,
    compute_claim_rewards,
    compute_start_session,
    compute_complete_session,
)

# Facade
from .program import FocusProgram


__all__ = [
    # Core types
    'LedgerView',
    'Move',
    'Transaction',
    'PendingTransaction',
    'TransactionOrigin',
    'OriginType',
    'build_transaction',
    'empty_pending_transaction',
    'user_origin',
    'Unit',
    'UnitStateChange',
    'ExecuteResult',
    'token',
    'create_record_unit',
    'protocol_custody_rule',
    'calendar_day',
    'day_gap',
    'time_until_next_day',
    'SYSTEM_WALLET',
    'UNIT_TYPE_TOKEN',
    'UNIT_TYPE_REGISTRY',
    'UNIT_TYPE_PROFILE',
    'UNIT_TYPE_COMMITMENT',
    'UNIT_TYPE_SESSION',
    # Exceptions
    'LedgerError',
    'TransferRuleViolation',
    'UnitNotRegistered',
    'WalletNotRegistered',
    'TransactionRejected',
    'FocusError',
    'InvalidSessionCount',
    'InvalidDayCount',
    'InvalidAmount',
    'DuplicateRegistry',
    'DuplicateProfile',
    'DuplicateCommitment',
    'DuplicateSession',
    'AccountNotFound',
    'InsufficientFunds',
    'CommitmentInactive',
    'CommitmentEnded',
    'CommitmentNotEnded',
    'InvalidAuthority',
    'DailySessionsCompleted',
    'SessionTooSoon',
    'SessionNotComplete',
    'SlotVerificationFailed',
    'SessionAlreadyCompleted',
    # Ledger
    'Ledger',
    # Addressing
    'derive_address',
    'registry_address',
    'profile_address',
    'commitment_address',
    'vault_address',
    'session_address',
    'vault_authority_address',
    'reward_pool_address',
    'is_protocol_custody',
    # Configuration
    'ProgramConfig',
    'DEFAULT_CONFIG',
    'PENALTY_RETAIN',
    'PENALTY_SWEEP',
    'PENALTY_BURN',
    # Settlement
    'SettlementResult',
    'TIER_BONUS',
    'TIER_REFUND',
    'TIER_PENALTY',
    'calculate_settlement',
    'calculate_required_sessions',
    'select_tier',
    # Program records
    'RegistryRecord',
    'ProfileRecord',
    'CommitmentRecord',
    'SessionRecord',
    'load_registry',
    'load_profile',
    'load_commitment',
    'load_session',
    'compute_create_registry',
    'compute_fund_reward_pool',
    'compute_create_profile',
    'compute_open_commitment',
    'compute_claim_rewards',
    'compute_start_session',
    'compute_complete_session',
    # Facade
    'FocusProgram',
]

__version__ = '1.0.0'
