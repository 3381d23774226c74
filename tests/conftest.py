"""
conftest.py - Shared pytest fixtures for focusledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Basic ledgers (token registered, funded participant wallets)
- An initialized program (registry created, reward pool funded)
- An open commitment for alice
- Helpers that walk a commitment through its session schedule
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from focusledger import (
    Ledger, FocusProgram, ProgramConfig,
    token,
)


# =============================================================================
# CONSTANTS
# =============================================================================

START = datetime(2025, 1, 1, 9, 0)
ASSET = "FOCUS"
STAKE = Decimal("100000000")          # 100 FOCUS at 6 decimals
INITIAL_BALANCE = Decimal("1000000000")
POOL_FUNDING = Decimal("100000000")
REWARD_RATE = 10

SESSION_LENGTH = timedelta(minutes=55)
SESSION_SPACING = timedelta(minutes=30)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_ledger(name: str = "test") -> Ledger:
    """Ledger with the staking token and funded admin/alice/bob wallets."""
    ledger = Ledger(name, START, verbose=False, test_mode=True)
    ledger.register_unit(token(ASSET, "Focus Token"))
    for wallet in ("admin", "alice", "bob"):
        ledger.register_wallet(wallet)
        ledger.set_balance(wallet, ASSET, INITIAL_BALANCE)
    return ledger


def make_program(ledger: Ledger, config: ProgramConfig = None, fund_pool: bool = True) -> FocusProgram:
    """Create the registry (and fund the reward pool) on ``ledger``."""
    program = FocusProgram(ledger)
    if config is None:
        program.create_registry("admin", ASSET, REWARD_RATE)
    else:
        program.create_registry("admin", ASSET, REWARD_RATE, config)
    if fund_pool:
        program.fund_reward_pool("admin", POOL_FUNDING)
    return program


def advance(ledger: Ledger, delta: timedelta) -> None:
    ledger.advance_time(ledger.current_time + delta)


def run_session(ledger: Ledger, program: FocusProgram, owner: str, commitment: str, session_id: int) -> str:
    """Start a session, wait out the minimum duration, complete it, then wait out the spacing."""
    session = program.start_session(owner, commitment, session_id)
    advance(ledger, SESSION_LENGTH)
    program.complete_session(owner, session)
    advance(ledger, SESSION_SPACING)
    return session


def work_schedule(
    ledger: Ledger,
    program: FocusProgram,
    owner: str,
    commitment: str,
    sessions_by_day: List[int],
    day_zero: datetime = START,
) -> int:
    """
    Complete ``sessions_by_day[d]`` sessions on day ``d`` of the commitment.

    Returns:
        Total number of sessions completed.
    """
    session_id = 0
    for day, count in enumerate(sessions_by_day):
        day_start = day_zero + timedelta(days=day)
        if ledger.current_time < day_start:
            ledger.advance_time(day_start)
        for _ in range(count):
            run_session(ledger, program, owner, commitment, session_id)
            session_id += 1
    return session_id


def token_supply(ledger: Ledger) -> Decimal:
    return ledger.total_supply(ASSET)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Ledger with FOCUS registered and admin/alice/bob funded."""
    return make_ledger()


@pytest.fixture
def program(ledger):
    """Program with registry created and reward pool funded."""
    return make_program(ledger)


@pytest.fixture
def alice_profile(program):
    return program.create_profile("alice")


@pytest.fixture
def commitment(program, alice_profile):
    """alice: 100 FOCUS staked, 2 sessions/day for 2 days."""
    return program.open_commitment("alice", 1, STAKE, 2, 2)
