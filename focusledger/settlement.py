"""
settlement.py - Settlement Engine

Pure functions that turn a finished commitment's counters into a payout.
Nothing here reads a LedgerView; every input is an explicit parameter, so the
tier logic can be tested exhaustively without a ledger.

Key Formulas:
    required = sessions_per_day * total_days
    rate     = completed / required            (compared as integers, never floats)

    rate >= 90%         payout = stake + floor(stake * reward_rate_percent / 100)
    75% <= rate < 90%   payout = stake
    rate < 75%          payout = floor(stake * 75 / 100)

Thresholds and the penalty refund percentage come from ProgramConfig.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal

from .config import ProgramConfig, DEFAULT_CONFIG


TIER_BONUS = "BONUS"
TIER_REFUND = "REFUND"
TIER_PENALTY = "PENALTY"


@dataclass(frozen=True, slots=True)
class SettlementResult:
    """
    Immutable outcome of a settlement calculation.

    ``payout = stake_returned + bonus``; ``penalty`` is the part of the stake
    that stays under protocol custody.
    """
    required_sessions: int
    completed_sessions: int
    tier: str
    amount_staked: Decimal
    payout: Decimal
    stake_returned: Decimal
    bonus: Decimal
    penalty: Decimal

    @property
    def completion_percent(self) -> Decimal:
        """Completion rate as a percentage, for display only."""
        if self.required_sessions == 0:
            return Decimal("0")
        return Decimal(self.completed_sessions * 100) / Decimal(self.required_sessions)


def calculate_required_sessions(sessions_per_day: int, total_days: int) -> int:
    return sessions_per_day * total_days


def meets_threshold(completed: int, required: int, threshold_percent: int) -> bool:
    """
    True if completed / required >= threshold_percent / 100.

    Cross-multiplied so the comparison is exact.
    """
    if required <= 0:
        raise ValueError(f"required sessions must be positive, got {required}")
    return completed * 100 >= required * threshold_percent


def select_tier(completed: int, required: int, config: ProgramConfig = DEFAULT_CONFIG) -> str:
    """Pick the settlement tier, highest first."""
    if completed < 0:
        raise ValueError(f"completed sessions cannot be negative, got {completed}")
    if meets_threshold(completed, required, config.bonus_threshold_percent):
        return TIER_BONUS
    if meets_threshold(completed, required, config.refund_threshold_percent):
        return TIER_REFUND
    return TIER_PENALTY


def calculate_bonus(amount_staked: Decimal, reward_rate_percent: int) -> Decimal:
    """floor(amount_staked * reward_rate_percent / 100) in whole base units."""
    return Decimal((int(amount_staked) * reward_rate_percent) // 100)


def calculate_penalty_refund(amount_staked: Decimal, refund_percent: int) -> Decimal:
    """floor(amount_staked * refund_percent / 100) in whole base units."""
    return Decimal((int(amount_staked) * refund_percent) // 100)


def calculate_settlement(
    amount_staked: Decimal,
    sessions_per_day: int,
    total_days: int,
    completed_sessions: int,
    reward_rate_percent: int,
    config: ProgramConfig = DEFAULT_CONFIG,
) -> SettlementResult:
    """
    Compute the payout for a finished commitment.

    Args:
        amount_staked: Stake held in the vault (whole base units)
        sessions_per_day: Scheduled sessions per day
        total_days: Scheduled days
        completed_sessions: Sessions completed over the commitment's lifetime
        reward_rate_percent: Registry bonus rate applied in the top tier
        config: Thresholds and penalty refund percentage

    Returns:
        SettlementResult with tier, payout and its split into stake/bonus/penalty.

    Example:
        >>> calculate_settlement(Decimal(100_000_000), 2, 2, 3, 10).payout
        Decimal('100000000')
    """
    if amount_staked <= 0:
        raise ValueError(f"amount_staked must be positive, got {amount_staked}")
    if reward_rate_percent < 0:
        raise ValueError(f"reward_rate_percent cannot be negative, got {reward_rate_percent}")
    amount_staked = Decimal(int(amount_staked))
    required = calculate_required_sessions(sessions_per_day, total_days)
    tier = select_tier(completed_sessions, required, config)

    if tier == TIER_BONUS:
        stake_returned = amount_staked
        bonus = calculate_bonus(amount_staked, reward_rate_percent)
    elif tier == TIER_REFUND:
        stake_returned = amount_staked
        bonus = Decimal("0")
    else:
        stake_returned = calculate_penalty_refund(amount_staked, config.penalty_refund_percent)
        bonus = Decimal("0")

    return SettlementResult(
        required_sessions=required,
        completed_sessions=completed_sessions,
        tier=tier,
        amount_staked=amount_staked,
        payout=stake_returned + bonus,
        stake_returned=stake_returned,
        bonus=bonus,
        penalty=amount_staked - stake_returned,
    )
