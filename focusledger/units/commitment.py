"""
commitment.py - Staked Focus Commitments

A commitment is a participant's promise to complete ``sessions_per_day``
focus sessions on each of ``total_days`` days. Opening one moves the stake
into a vault owned by the protocol; claiming it after the window settles the
stake by completion rate (see settlement.py).

Record lifecycle:
    open_commitment   -> is_active=True, stake in vault
    start/complete    -> progress counters (session.py)
    claim_rewards     -> is_active=False, settled_at/payout/tier set

Money flow at claim:
    vault       -> owner        stake_returned
    reward pool -> owner        bonus (BONUS tier only)
    vault       -> disposition  penalty (sweep/burn only; retain leaves it)

Every debit from a vault or the reward pool is signed by the vault authority.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..addresses import (
    commitment_address, profile_address, registry_address,
    reward_pool_address, vault_address, vault_authority_address,
)
from ..config import PENALTY_BURN, PENALTY_SWEEP
from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange,
    SYSTEM_WALLET, UNIT_TYPE_COMMITMENT,
    AccountNotFound, CommitmentInactive, CommitmentNotEnded, DuplicateCommitment,
    InsufficientFunds, InvalidAuthority, InvalidDayCount, InvalidSessionCount,
    build_transaction, create_record_unit, user_origin,
)
from ..settlement import SettlementResult, calculate_settlement
from .profile import load_profile
from .registry import RegistryRecord, load_registry, validate_amount


@dataclass(frozen=True, slots=True)
class CommitmentRecord:
    """
    Typed view of a commitment record.

    ``sessions_completed`` is the lifetime total used for settlement;
    ``days_completed`` counts days whose quota was met and is informational.
    """
    owner: str
    commitment_id: int
    asset_id: str
    vault: str
    amount_staked: Decimal
    sessions_per_day: int
    total_days: int
    start_timestamp: datetime
    end_timestamp: datetime
    is_active: bool = True
    sessions_completed_today: int = 0
    sessions_completed: int = 0
    days_completed: int = 0
    last_session_timestamp: Optional[datetime] = None
    settled_at: Optional[datetime] = None
    payout: Optional[Decimal] = None
    tier: Optional[str] = None

    @property
    def address(self) -> str:
        return commitment_address(self.owner, self.commitment_id)

    @property
    def required_sessions(self) -> int:
        return self.sessions_per_day * self.total_days


def to_state_dict(record: CommitmentRecord) -> Dict[str, Any]:
    return {
        'owner': record.owner,
        'commitment_id': record.commitment_id,
        'asset_id': record.asset_id,
        'vault': record.vault,
        'amount_staked': record.amount_staked,
        'sessions_per_day': record.sessions_per_day,
        'total_days': record.total_days,
        'start_timestamp': record.start_timestamp,
        'end_timestamp': record.end_timestamp,
        'is_active': record.is_active,
        'sessions_completed_today': record.sessions_completed_today,
        'sessions_completed': record.sessions_completed,
        'days_completed': record.days_completed,
        'last_session_timestamp': record.last_session_timestamp,
        'settled_at': record.settled_at,
        'payout': record.payout,
        'tier': record.tier,
    }


def load_commitment(view: LedgerView, address: str) -> CommitmentRecord:
    """
    Load the commitment stored at ``address``.

    Raises:
        AccountNotFound: If there is no commitment at that address
    """
    if not view.has_unit(address) or view.get_unit(address).unit_type != UNIT_TYPE_COMMITMENT:
        raise AccountNotFound(f"no commitment at {address}")
    raw = view.get_unit_state(address)
    return CommitmentRecord(
        owner=raw['owner'],
        commitment_id=raw['commitment_id'],
        asset_id=raw['asset_id'],
        vault=raw['vault'],
        amount_staked=Decimal(raw['amount_staked']),
        sessions_per_day=raw['sessions_per_day'],
        total_days=raw['total_days'],
        start_timestamp=raw['start_timestamp'],
        end_timestamp=raw['end_timestamp'],
        is_active=raw.get('is_active', True),
        sessions_completed_today=raw.get('sessions_completed_today', 0),
        sessions_completed=raw.get('sessions_completed', 0),
        days_completed=raw.get('days_completed', 0),
        last_session_timestamp=raw.get('last_session_timestamp'),
        settled_at=raw.get('settled_at'),
        payout=raw.get('payout'),
        tier=raw.get('tier'),
    )


def create_commitment_unit(record: CommitmentRecord) -> Unit:
    return create_record_unit(
        address=record.address,
        name=f"Focus Commitment {record.owner}#{record.commitment_id}",
        unit_type=UNIT_TYPE_COMMITMENT,
        state=to_state_dict(record),
    )


def _balance_or_zero(view: LedgerView, wallet: str, asset_id: str) -> Decimal:
    if wallet not in view.list_wallets():
        return Decimal("0")
    return view.get_balance(wallet, asset_id)


# ============================================================================
# OPEN
# ============================================================================

def compute_open_commitment(
    view: LedgerView,
    owner: str,
    commitment_id: int,
    amount: Decimal,
    sessions_per_day: int,
    total_days: int,
) -> PendingTransaction:
    """
    Lock ``amount`` in a fresh vault and create the commitment record.

    Checks, in order: session count, day count, amount, profile exists,
    commitment id unused, owner balance.

    Args:
        view: Read-only ledger access
        owner: Participant opening the commitment (must have a profile)
        commitment_id: Owner-chosen id, unique per owner
        amount: Stake in whole base units of the registry asset
        sessions_per_day: 1..max_sessions_per_day (int)
        total_days: 1..max_total_days (int)

    Raises:
        ValueError: If commitment_id is not a non-negative int
        AccountNotFound: If the registry or the owner's profile does not exist
        InvalidSessionCount, InvalidDayCount, InvalidAmount,
        DuplicateCommitment, InsufficientFunds
    """
    if isinstance(commitment_id, bool) or not isinstance(commitment_id, int) or commitment_id < 0:
        raise ValueError(f"commitment_id must be a non-negative integer, got {commitment_id!r}")
    registry = load_registry(view)
    config = registry.config

    if (isinstance(sessions_per_day, bool) or not isinstance(sessions_per_day, int)
            or not 0 < sessions_per_day <= config.max_sessions_per_day):
        raise InvalidSessionCount(f"got {sessions_per_day}, allowed 1..{config.max_sessions_per_day}")
    if (isinstance(total_days, bool) or not isinstance(total_days, int)
            or not 0 < total_days <= config.max_total_days):
        raise InvalidDayCount(f"got {total_days}, allowed 1..{config.max_total_days}")
    amount = validate_amount(amount)

    load_profile(view, owner)

    address = commitment_address(owner, commitment_id)
    vault = vault_address(owner, commitment_id)
    if view.has_unit(address) or vault in view.list_wallets():
        raise DuplicateCommitment(f"{owner}#{commitment_id}")

    balance = _balance_or_zero(view, owner, registry.asset_id)
    if balance < amount:
        raise InsufficientFunds(f"{owner} holds {balance} {registry.asset_id}, needs {amount}")

    now = view.current_time
    record = CommitmentRecord(
        owner=owner,
        commitment_id=commitment_id,
        asset_id=registry.asset_id,
        vault=vault,
        amount_staked=amount,
        sessions_per_day=sessions_per_day,
        total_days=total_days,
        start_timestamp=now,
        end_timestamp=now + timedelta(days=total_days),
    )

    reg_address = registry_address()
    reg_state = view.get_unit_state(reg_address)
    new_reg_state = {
        **reg_state,
        'total_value_staked': registry.total_value_staked + amount,
    }

    moves = [
        Move(
            quantity=amount,
            unit_symbol=registry.asset_id,
            source=owner,
            dest=vault,
            contract_id=f"stake_{address}",
            metadata={'signer': owner},
        ),
    ]
    return build_transaction(
        view,
        moves,
        [UnitStateChange(unit=reg_address, old_state=reg_state, new_state=new_reg_state)],
        origin=user_origin(owner, address, "OPEN_COMMITMENT"),
        units_to_create=(create_commitment_unit(record),),
        wallets_to_create=(vault,),
    )


# ============================================================================
# CLAIM
# ============================================================================

def preview_settlement(
    commitment: CommitmentRecord,
    registry: RegistryRecord,
) -> SettlementResult:
    """Settlement the commitment would receive from its current counters."""
    return calculate_settlement(
        amount_staked=commitment.amount_staked,
        sessions_per_day=commitment.sessions_per_day,
        total_days=commitment.total_days,
        completed_sessions=commitment.sessions_completed,
        reward_rate_percent=registry.reward_rate_percent,
        config=registry.config,
    )


def compute_claim_rewards(
    view: LedgerView,
    caller: str,
    address: str,
) -> PendingTransaction:
    """
    Settle an ended commitment and pay the owner.

    Raises:
        AccountNotFound: If there is no commitment at ``address``
        InvalidAuthority: If caller is not the owner
        CommitmentInactive: If the commitment was already settled
        CommitmentNotEnded: If the window is still open (retry_after set)
        InsufficientFunds: If the reward pool cannot cover the bonus
    """
    commitment = load_commitment(view, address)
    if caller != commitment.owner:
        raise InvalidAuthority(f"{caller} does not own {address}")
    if not commitment.is_active:
        raise CommitmentInactive(address)
    now = view.current_time
    if now < commitment.end_timestamp:
        raise CommitmentNotEnded(
            f"ends at {commitment.end_timestamp}",
            retry_after=commitment.end_timestamp - now,
        )

    registry = load_registry(view)
    profile = load_profile(view, commitment.owner)
    result = preview_settlement(commitment, registry)

    pool = reward_pool_address()
    if result.bonus > 0:
        pool_balance = _balance_or_zero(view, pool, commitment.asset_id)
        if pool_balance < result.bonus:
            raise InsufficientFunds(f"reward pool holds {pool_balance}, bonus is {result.bonus}")

    signed = {'authority': vault_authority_address()}
    contract_id = f"settle_{address}"
    moves: List[Move] = []
    if result.stake_returned > 0:
        moves.append(Move(
            quantity=result.stake_returned,
            unit_symbol=commitment.asset_id,
            source=commitment.vault,
            dest=commitment.owner,
            contract_id=contract_id,
            metadata=dict(signed),
        ))
    if result.bonus > 0:
        moves.append(Move(
            quantity=result.bonus,
            unit_symbol=commitment.asset_id,
            source=pool,
            dest=commitment.owner,
            contract_id=contract_id,
            metadata=dict(signed),
        ))
    if result.penalty > 0:
        disposition = registry.config.penalty_disposition
        if disposition in (PENALTY_SWEEP, PENALTY_BURN):
            moves.append(Move(
                quantity=result.penalty,
                unit_symbol=commitment.asset_id,
                source=commitment.vault,
                dest=registry.authority if disposition == PENALTY_SWEEP else SYSTEM_WALLET,
                contract_id=f"penalty_{address}",
                metadata=dict(signed),
            ))

    state = view.get_unit_state(address)
    new_state = {
        **state,
        'is_active': False,
        'settled_at': now,
        'payout': result.payout,
        'tier': result.tier,
    }

    prof_address = profile_address(commitment.owner)
    prof_state = view.get_unit_state(prof_address)
    new_prof_state = {
        **prof_state,
        'total_rewards_earned': profile.total_rewards_earned + result.payout,
    }

    reg_address = registry_address()
    reg_state = view.get_unit_state(reg_address)
    new_reg_state = {
        **reg_state,
        'total_value_staked': registry.total_value_staked - commitment.amount_staked,
        'total_rewards_paid': registry.total_rewards_paid + result.bonus,
        'total_penalties': registry.total_penalties + result.penalty,
    }

    return build_transaction(
        view,
        moves,
        [
            UnitStateChange(unit=address, old_state=state, new_state=new_state),
            UnitStateChange(unit=prof_address, old_state=prof_state, new_state=new_prof_state),
            UnitStateChange(unit=reg_address, old_state=reg_state, new_state=new_reg_state),
        ],
        origin=user_origin(caller, address, "CLAIM_REWARDS"),
    )
