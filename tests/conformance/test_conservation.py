"""
Conservation Law Conformance Tests

INVARIANT: For the staking token, at all times t:
    Σ_{w ∈ wallets} balance(w, FOCUS, t) = constant

Staking, bonuses and penalties redistribute tokens between participants,
vaults, the reward pool and the registry authority. A burn is a move into the
system wallet, so the signed total is unchanged there too.

Program bookkeeping is checked alongside:
    registry.total_value_staked = Σ stake of active commitments
    payout = stake_returned + bonus, stake_returned + penalty = stake
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal
from datetime import timedelta

from focusledger import (
    ProgramConfig, PENALTY_RETAIN, PENALTY_SWEEP, PENALTY_BURN, SYSTEM_WALLET,
    load_registry, load_commitment, vault_address, reward_pool_address,
)
from tests.conftest import (
    START, ASSET, STAKE, POOL_FUNDING, make_ledger, make_program, work_schedule, token_supply,
)


# =============================================================================
# STRATEGIES
# =============================================================================

@st.composite
def commitment_scenario(draw):
    """A schedule plus the number of sessions actually completed each day."""
    per_day = draw(st.integers(min_value=1, max_value=3))
    days = draw(st.integers(min_value=1, max_value=3))
    done = draw(st.lists(st.integers(min_value=0, max_value=per_day), min_size=days, max_size=days))
    stake = draw(st.integers(min_value=1, max_value=5 * 10**8))
    disposition = draw(st.sampled_from([PENALTY_RETAIN, PENALTY_SWEEP, PENALTY_BURN]))
    return per_day, days, done, Decimal(stake), disposition


# =============================================================================
# PROPERTIES
# =============================================================================

class TestConservationProperties:

    @given(commitment_scenario())
    @settings(max_examples=40, deadline=None)
    def test_supply_constant_through_lifecycle(self, scenario):
        """
        PROPERTY: Opening, working and settling a commitment never changes
        the token supply, and the owner's net change equals bonus - penalty.
        """
        per_day, days, done, stake, disposition = scenario
        ledger = make_ledger()
        program = make_program(ledger, ProgramConfig(penalty_disposition=disposition))
        program.create_profile("alice")
        supply = token_supply(ledger)
        alice_before = ledger.get_balance("alice", ASSET)

        commitment = program.open_commitment("alice", 1, stake, per_day, days)
        assert token_supply(ledger) == supply
        work_schedule(ledger, program, "alice", commitment, done)
        ledger.advance_time(START + timedelta(days=days))
        result = program.claim_rewards("alice", commitment)

        assert token_supply(ledger) == supply
        assert ledger.verify_double_entry({ASSET: supply})['valid']
        assert result.payout == result.stake_returned + result.bonus
        assert result.stake_returned + result.penalty == stake
        assert ledger.get_balance("alice", ASSET) - alice_before == result.bonus - result.penalty
        assert load_registry(ledger).total_value_staked == Decimal("0")

        vault = ledger.get_balance(vault_address("alice", 1), ASSET)
        if disposition == PENALTY_RETAIN:
            assert vault == result.penalty
        else:
            assert vault == Decimal("0")

    @given(st.lists(st.integers(min_value=1, max_value=10**8), min_size=1, max_size=6))
    @settings(max_examples=40, deadline=None)
    def test_staked_total_matches_vaults(self, stakes):
        """
        PROPERTY: total_value_staked equals the sum held in active vaults.
        """
        ledger = make_ledger()
        program = make_program(ledger)
        program.create_profile("alice")
        for i, stake in enumerate(stakes):
            program.open_commitment("alice", i, Decimal(stake), 1, 1)

        held = sum(
            (ledger.get_balance(vault_address("alice", i), ASSET) for i in range(len(stakes))),
            Decimal("0"),
        )
        assert load_registry(ledger).total_value_staked == held == Decimal(sum(stakes))


# =============================================================================
# EXAMPLES
# =============================================================================

class TestConservationExamples:

    def test_bonus_comes_out_of_pool(self, commitment, program, ledger):
        work_schedule(ledger, program, "alice", commitment, [2, 2])
        ledger.advance_time(START + timedelta(days=2))
        program.claim_rewards("alice", commitment)
        registry = load_registry(ledger)
        pool = ledger.get_balance(reward_pool_address(), ASSET)
        assert pool == registry.total_reward_pool_funded - registry.total_rewards_paid
        assert pool == POOL_FUNDING - Decimal("10000000")

    def test_burn_goes_to_system_wallet(self):
        ledger = make_ledger()
        program = make_program(ledger, ProgramConfig(penalty_disposition=PENALTY_BURN))
        program.create_profile("alice")
        commitment = program.open_commitment("alice", 1, STAKE, 1, 1)
        system_before = ledger.get_balance(SYSTEM_WALLET, ASSET)
        ledger.advance_time(START + timedelta(days=1))
        program.claim_rewards("alice", commitment)
        assert ledger.get_balance(SYSTEM_WALLET, ASSET) - system_before == Decimal("25000000")
        assert load_registry(ledger).total_penalties == Decimal("25000000")

    def test_settled_commitment_no_longer_counted(self):
        ledger = make_ledger()
        program = make_program(ledger)
        program.create_profile("alice")
        first = program.open_commitment("alice", 1, STAKE, 1, 1)
        program.open_commitment("alice", 2, STAKE, 1, 5)
        ledger.advance_time(START + timedelta(days=1))
        program.claim_rewards("alice", first)
        assert not load_commitment(ledger, first).is_active
        assert load_registry(ledger).total_value_staked == STAKE
