"""
config.py - Protocol rules for the commitment program

ProgramConfig is an immutable bundle of every tunable rule: schedule limits,
time gates, slot verification and settlement tiers. It is captured into the
registry record when the registry is created and read back from there by every
operation, so all participants are held to the same rules for the lifetime of
the registry.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict

# Penalty disposition choices for the residual left in a vault when a
# low-completion settlement pays out less than the stake.
PENALTY_RETAIN = "retain"    # leave the residual in the vault
PENALTY_SWEEP = "sweep"      # move it to the registry authority's wallet
PENALTY_BURN = "burn"        # redeem it to the system wallet

PENALTY_DISPOSITIONS = (PENALTY_RETAIN, PENALTY_SWEEP, PENALTY_BURN)


def _microseconds(delta: timedelta) -> int:
    # whole microseconds, the resolution of timedelta
    return delta // timedelta(microseconds=1)


@dataclass(frozen=True, slots=True)
class ProgramConfig:
    """
    Immutable protocol rules.

    Defaults: 1-10 sessions/day, 1-30 days, 30 minutes between sessions,
    55 minutes per session (25 focus + 5 break + 25 focus), 400ms slots with a
    10-slot tolerance, and settlement tiers at 90% (stake + bonus) and 75%
    (stake back); below that 75% of the stake is refunded.

    slot_duration has to match the Ledger's slot_duration; the registry
    refuses a config that differs.
    """
    max_sessions_per_day: int = 10
    max_total_days: int = 30
    min_session_spacing: timedelta = timedelta(minutes=30)
    min_session_duration: timedelta = timedelta(minutes=55)
    slot_duration: timedelta = timedelta(milliseconds=400)
    slot_tolerance: int = 10
    bonus_threshold_percent: int = 90
    refund_threshold_percent: int = 75
    penalty_refund_percent: int = 75
    penalty_disposition: str = PENALTY_RETAIN

    def __post_init__(self):
        if self.max_sessions_per_day < 1:
            raise ValueError(f"max_sessions_per_day must be >= 1, got {self.max_sessions_per_day}")
        if self.max_total_days < 1:
            raise ValueError(f"max_total_days must be >= 1, got {self.max_total_days}")
        if self.min_session_spacing < timedelta(0):
            raise ValueError("min_session_spacing cannot be negative")
        if self.min_session_duration <= timedelta(0):
            raise ValueError("min_session_duration must be positive")
        if self.slot_duration <= timedelta(0):
            raise ValueError("slot_duration must be positive")
        if self.slot_tolerance < 0:
            raise ValueError(f"slot_tolerance cannot be negative, got {self.slot_tolerance}")
        if not 0 < self.refund_threshold_percent <= self.bonus_threshold_percent <= 100:
            raise ValueError(
                "thresholds must satisfy 0 < refund_threshold_percent <= bonus_threshold_percent <= 100"
            )
        if not 0 <= self.penalty_refund_percent <= 100:
            raise ValueError(
                f"penalty_refund_percent must be within [0, 100], got {self.penalty_refund_percent}"
            )
        if self.penalty_disposition not in PENALTY_DISPOSITIONS:
            raise ValueError(
                f"penalty_disposition must be one of {PENALTY_DISPOSITIONS}, "
                f"got {self.penalty_disposition!r}"
            )

    @property
    def expected_slots(self) -> int:
        """Slots the ledger must have advanced over a minimum-length session."""
        return self.min_session_duration // self.slot_duration

    @property
    def min_session_slots(self) -> int:
        return max(0, self.expected_slots - self.slot_tolerance)

    def to_state_dict(self) -> Dict[str, Any]:
        """
        Flatten to plain values for storage in the registry record.

        Durations are stored as whole microseconds, so from_state_dict()
        gives back an equal config.
        """
        return {
            'max_sessions_per_day': self.max_sessions_per_day,
            'max_total_days': self.max_total_days,
            'min_session_spacing_us': _microseconds(self.min_session_spacing),
            'min_session_duration_us': _microseconds(self.min_session_duration),
            'slot_duration_us': _microseconds(self.slot_duration),
            'slot_tolerance': self.slot_tolerance,
            'bonus_threshold_percent': self.bonus_threshold_percent,
            'refund_threshold_percent': self.refund_threshold_percent,
            'penalty_refund_percent': self.penalty_refund_percent,
            'penalty_disposition': self.penalty_disposition,
        }

    @classmethod
    def from_state_dict(cls, raw: Dict[str, Any]) -> 'ProgramConfig':
        """Inverse of to_state_dict(); missing keys fall back to defaults."""
        default = cls()
        return cls(
            max_sessions_per_day=raw.get('max_sessions_per_day', default.max_sessions_per_day),
            max_total_days=raw.get('max_total_days', default.max_total_days),
            min_session_spacing=timedelta(microseconds=raw.get(
                'min_session_spacing_us', _microseconds(default.min_session_spacing))),
            min_session_duration=timedelta(microseconds=raw.get(
                'min_session_duration_us', _microseconds(default.min_session_duration))),
            slot_duration=timedelta(microseconds=raw.get(
                'slot_duration_us', _microseconds(default.slot_duration))),
            slot_tolerance=raw.get('slot_tolerance', default.slot_tolerance),
            bonus_threshold_percent=raw.get('bonus_threshold_percent', default.bonus_threshold_percent),
            refund_threshold_percent=raw.get('refund_threshold_percent', default.refund_threshold_percent),
            penalty_refund_percent=raw.get('penalty_refund_percent', default.penalty_refund_percent),
            penalty_disposition=raw.get('penalty_disposition', default.penalty_disposition),
        )


DEFAULT_CONFIG = ProgramConfig()
