#!/usr/bin/env python3
"""
demo.py - Walkthrough: a staked focus commitment from open to settlement

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL SEE:
  1-3:  Setup       - Ledger, staking token, registry, reward pool, profiles
  4-6:  Commitment  - Staking, timed sessions, rejected shortcuts
  7-8:  Settlement  - A full-completion bonus and a low-completion penalty
  9:    Audit       - Transaction log and conservation check

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from focusledger import (
    Ledger, FocusProgram, Move,
    build_transaction, token,
    SYSTEM_WALLET,
    FocusError, SessionTooSoon, SessionNotComplete, CommitmentNotEnded,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    asset: str = "FOCUS"
    reward_rate_percent: int = 10

    # Base units (6 decimals: 100_000_000 = 100 FOCUS)
    alice_initial: Decimal = Decimal("500000000")
    bob_initial: Decimal = Decimal("500000000")
    pool_funding: Decimal = Decimal("50000000")
    stake: Decimal = Decimal("100000000")

    sessions_per_day: int = 2
    total_days: int = 2


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv

SESSION = timedelta(minutes=55)
SPACING = timedelta(minutes=30)


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def run_session(ledger: Ledger, program: FocusProgram, owner: str, commitment: str, session_id: int):
    """Start a session, let a full session elapse, complete it."""
    session = program.start_session(owner, commitment, session_id)
    ledger.advance_time(ledger.current_time + SESSION)
    program.complete_session(owner, session)


# ============================================================================
# SETUP
# ============================================================================

def step_01_ledger():
    step_header(1, "Ledger and Staking Token",
        "Create the ledger, register the token and mint balances.")

    ledger = Ledger("focus-demo", initial_time=CONFIG.start_time, verbose=False)
    ledger.register_unit(token(CONFIG.asset, "Focus Token"))
    for wallet in ("admin", "alice", "bob"):
        ledger.register_wallet(wallet)

    mint = build_transaction(ledger, [
        Move(CONFIG.alice_initial, CONFIG.asset, SYSTEM_WALLET, "alice", "mint_alice"),
        Move(CONFIG.bob_initial, CONFIG.asset, SYSTEM_WALLET, "bob", "mint_bob"),
        Move(CONFIG.pool_funding, CONFIG.asset, SYSTEM_WALLET, "admin", "mint_admin"),
    ])
    print(f"mint: {ledger.execute(mint)}")
    for wallet in ("admin", "alice", "bob"):
        print(f"  {wallet:6s} {ledger.get_balance(wallet, CONFIG.asset)}")

    wait_for_enter()
    return ledger


def step_02_registry(ledger: Ledger) -> FocusProgram:
    step_header(2, "Registry and Reward Pool",
        "Create the program registry and fund the pool that pays bonuses.")

    program = FocusProgram(ledger)
    address = program.create_registry("admin", CONFIG.asset, CONFIG.reward_rate_percent)
    program.fund_reward_pool("admin", CONFIG.pool_funding)

    registry = program.registry()
    print(f"registry address:  {address}")
    print(f"reward rate:       {registry.reward_rate_percent}%")
    print(f"session length:    {registry.config.min_session_duration}")
    print(f"reward pool:       {program.reward_pool_balance()}")

    wait_for_enter()
    return program


def step_03_profiles(program: FocusProgram):
    step_header(3, "Profiles", "Every participant needs a profile before staking.")

    for owner in ("alice", "bob"):
        program.create_profile(owner)
    print(f"participants: {program.registry().total_participants}")

    wait_for_enter()


# ============================================================================
# COMMITMENT
# ============================================================================

def step_04_open(program: FocusProgram):
    step_header(4, "Opening Commitments",
        "Stake tokens against a schedule of sessions.")

    commitments = {}
    for owner in ("alice", "bob"):
        commitments[owner] = program.open_commitment(
            owner, 1, CONFIG.stake, CONFIG.sessions_per_day, CONFIG.total_days
        )
        print(f"{owner}: vault holds {program.vault_balance(owner, 1)}")

    print(f"total staked: {program.registry().total_value_staked}")
    wait_for_enter()
    return commitments


def step_05_shortcuts(ledger: Ledger, program: FocusProgram, commitment: str):
    step_header(5, "Rejected Shortcuts",
        "Sessions must actually last, and must be spaced apart.")

    session = program.start_session("alice", commitment, 0)

    section_header("Completing after 10 minutes")
    ledger.advance_time(ledger.current_time + timedelta(minutes=10))
    try:
        program.complete_session("alice", session)
    except SessionNotComplete as e:
        print(f"rejected: {e} (retry in {e.retry_after})")

    section_header("Completing after the full session")
    ledger.advance_time(ledger.current_time + timedelta(minutes=45))
    program.complete_session("alice", session)

    section_header("Starting the next session immediately")
    try:
        program.start_session("alice", commitment, 1)
    except SessionTooSoon as e:
        print(f"rejected: {e} (retry in {e.retry_after})")

    wait_for_enter()


def step_06_schedule(ledger: Ledger, program: FocusProgram, commitments):
    step_header(6, "Working the Schedule",
        "alice completes every session, bob completes only one.")

    alice, bob = commitments["alice"], commitments["bob"]

    ledger.advance_time(ledger.current_time + SPACING)
    run_session(ledger, program, "alice", alice, 1)
    run_session(ledger, program, "bob", bob, 0)

    ledger.advance_time(CONFIG.start_time + timedelta(days=1))
    run_session(ledger, program, "alice", alice, 2)
    ledger.advance_time(ledger.current_time + SPACING)
    run_session(ledger, program, "alice", alice, 3)

    for owner in ("alice", "bob"):
        c = program.commitment(owner, 1)
        p = program.profile(owner)
        print(f"{owner}: {c.sessions_completed}/{c.required_sessions} sessions, "
              f"{c.days_completed} full days, streak {p.current_streak}")

    wait_for_enter()


# ============================================================================
# SETTLEMENT
# ============================================================================

def step_07_early_claim(program: FocusProgram, commitments):
    step_header(7, "Claiming Too Early", "Nothing settles before the window ends.")
    try:
        program.claim_rewards("alice", commitments["alice"])
    except CommitmentNotEnded as e:
        print(f"rejected: {e} (retry in {e.retry_after})")
    wait_for_enter()


def step_08_settle(ledger: Ledger, program: FocusProgram, commitments):
    step_header(8, "Settlement", "Pay out by completion rate.")

    ledger.advance_time(program.commitment("alice", 1).end_timestamp)
    for owner in ("alice", "bob"):
        result = program.claim_rewards(owner, commitments[owner])
        print(f"{owner}: {result.tier:8s} payout {result.payout} "
              f"(stake {result.stake_returned}, bonus {result.bonus}, penalty {result.penalty})")
        print(f"        balance now {ledger.get_balance(owner, CONFIG.asset)}")

    section_header("Claiming twice")
    try:
        program.claim_rewards("alice", commitments["alice"])
    except FocusError as e:
        print(f"rejected: {e}")

    wait_for_enter()


def step_09_audit(ledger: Ledger, program: FocusProgram):
    step_header(9, "Audit Trail", "Every operation is a logged, atomic transaction.")

    for tx in ledger.transaction_log:
        print(f"  #{tx.sequence_number:<3d} {tx.execution_time}  {tx.origin}")

    registry = program.registry()
    print(f"\nstill staked:   {registry.total_value_staked}")
    print(f"bonuses paid:   {registry.total_rewards_paid}")
    print(f"penalties held: {registry.total_penalties}")

    check = ledger.verify_double_entry()
    print(f"conservation:   {'OK' if check['valid'] else 'FAILED'} {check['supplies']}")


def main():
    print(__doc__)
    ledger = step_01_ledger()
    program = step_02_registry(ledger)
    step_03_profiles(program)
    commitments = step_04_open(program)
    step_05_shortcuts(ledger, program, commitments["alice"])
    step_06_schedule(ledger, program, commitments)
    step_07_early_claim(program, commitments)
    step_08_settle(ledger, program, commitments)
    step_09_audit(ledger, program)


if __name__ == "__main__":
    main()
