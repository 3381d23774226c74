"""
registry.py - Program Registry

The registry is the program's singleton configuration record, stored at
registry_address(). It is created once by its authority and then read by every
operation for the staking asset, the reward rate and the protocol rules, and
updated by the operations that move its aggregate counters.

Functions:
1. create_registry_unit() - Factory for the registry record
2. load_registry() / to_state_dict() - typed access to the record
3. compute_create_registry() - create the registry plus its custody wallets
4. compute_fund_reward_pool() - top up the pool that pays settlement bonuses
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from ..addresses import registry_address, reward_pool_address, vault_authority_address
from ..config import ProgramConfig, DEFAULT_CONFIG
from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange,
    UNIT_TYPE_REGISTRY, UNIT_TYPE_TOKEN,
    AccountNotFound, DuplicateRegistry, InsufficientFunds, InvalidAmount,
    UnitNotRegistered,
    build_transaction, create_record_unit, user_origin,
)


@dataclass(frozen=True, slots=True)
class RegistryRecord:
    """Typed view of the registry record."""
    authority: str
    asset_id: str
    reward_rate_percent: int
    config: ProgramConfig
    created_at: datetime
    total_participants: int = 0
    total_value_staked: Decimal = Decimal("0")
    total_reward_pool_funded: Decimal = Decimal("0")
    total_rewards_paid: Decimal = Decimal("0")
    total_penalties: Decimal = Decimal("0")


def to_state_dict(record: RegistryRecord) -> Dict[str, Any]:
    return {
        'authority': record.authority,
        'asset_id': record.asset_id,
        'reward_rate_percent': record.reward_rate_percent,
        'config': record.config.to_state_dict(),
        'created_at': record.created_at,
        'total_participants': record.total_participants,
        'total_value_staked': record.total_value_staked,
        'total_reward_pool_funded': record.total_reward_pool_funded,
        'total_rewards_paid': record.total_rewards_paid,
        'total_penalties': record.total_penalties,
    }


def load_registry(view: LedgerView) -> RegistryRecord:
    """
    Load the registry from the ledger.

    Raises:
        AccountNotFound: If the registry has not been created
    """
    address = registry_address()
    if not view.has_unit(address) or view.get_unit(address).unit_type != UNIT_TYPE_REGISTRY:
        raise AccountNotFound("registry has not been created")
    raw = view.get_unit_state(address)
    return RegistryRecord(
        authority=raw['authority'],
        asset_id=raw['asset_id'],
        reward_rate_percent=raw['reward_rate_percent'],
        config=ProgramConfig.from_state_dict(raw.get('config', {})),
        created_at=raw['created_at'],
        total_participants=raw.get('total_participants', 0),
        total_value_staked=Decimal(raw.get('total_value_staked', 0)),
        total_reward_pool_funded=Decimal(raw.get('total_reward_pool_funded', 0)),
        total_rewards_paid=Decimal(raw.get('total_rewards_paid', 0)),
        total_penalties=Decimal(raw.get('total_penalties', 0)),
    )


def create_registry_unit(record: RegistryRecord) -> Unit:
    return create_record_unit(
        address=registry_address(),
        name=f"Focus Program Registry ({record.asset_id})",
        unit_type=UNIT_TYPE_REGISTRY,
        state=to_state_dict(record),
    )


def compute_create_registry(
    view: LedgerView,
    authority: str,
    asset_id: str,
    reward_rate_percent: int,
    config: ProgramConfig = DEFAULT_CONFIG,
) -> PendingTransaction:
    """
    Create the registry with all counters at zero.

    Also registers the wallets the program needs: the vault authority, the
    reward pool and, if it is not yet known to the ledger, the authority's
    own wallet (the destination of swept penalties).

    Args:
        view: Read-only ledger access
        authority: Identity creating (and owning) the registry
        asset_id: Symbol of the token unit stakes are denominated in
        reward_rate_percent: Bonus percentage for top-tier settlements
        config: Protocol rules, frozen into the registry record. Its
            slot_duration must equal the ledger's slot_duration

    Raises:
        ValueError: If authority is empty, reward_rate_percent is not a
            non-negative int, or the config slot_duration differs from the ledger's
        DuplicateRegistry: If a registry already exists
        UnitNotRegistered: If asset_id is not a registered token
    """
    if not authority or not authority.strip():
        raise ValueError("authority cannot be empty")
    if isinstance(reward_rate_percent, bool) or not isinstance(reward_rate_percent, int):
        raise ValueError(f"reward_rate_percent must be an integer, got {reward_rate_percent!r}")
    if reward_rate_percent < 0:
        raise ValueError(f"reward_rate_percent cannot be negative, got {reward_rate_percent}")

    address = registry_address()
    if view.has_unit(address):
        raise DuplicateRegistry(address)
    if not view.has_unit(asset_id) or view.get_unit(asset_id).unit_type != UNIT_TYPE_TOKEN:
        raise UnitNotRegistered(f"Token {asset_id} not registered")
    if config.slot_duration != view.slot_duration:
        raise ValueError(
            f"config slot_duration {config.slot_duration} does not match "
            f"the ledger slot_duration {view.slot_duration}"
        )

    record = RegistryRecord(
        authority=authority,
        asset_id=asset_id,
        reward_rate_percent=reward_rate_percent,
        config=config,
        created_at=view.current_time,
    )

    known = view.list_wallets()
    wallets: List[str] = [
        w for w in (vault_authority_address(), reward_pool_address(), authority)
        if w not in known
    ]

    return build_transaction(
        view,
        moves=[],
        origin=user_origin(authority, address, "CREATE_REGISTRY"),
        units_to_create=(create_registry_unit(record),),
        wallets_to_create=tuple(wallets),
    )


def compute_fund_reward_pool(
    view: LedgerView,
    funder: str,
    amount: Decimal,
) -> PendingTransaction:
    """
    Move tokens from ``funder`` into the reward pool.

    Settlement bonuses are paid from the pool, so it must be funded before
    any top-tier claim can succeed.

    Raises:
        AccountNotFound: If the registry has not been created
        InvalidAmount: If amount is not a positive whole number of base units
        InsufficientFunds: If funder cannot cover amount
    """
    registry = load_registry(view)
    amount = validate_amount(amount)

    balance = view.get_balance(funder, registry.asset_id) if funder in view.list_wallets() else Decimal("0")
    if balance < amount:
        raise InsufficientFunds(f"{funder} holds {balance} {registry.asset_id}, needs {amount}")

    address = registry_address()
    state = view.get_unit_state(address)
    new_state = {
        **state,
        'total_reward_pool_funded': registry.total_reward_pool_funded + amount,
    }
    moves = [
        Move(
            quantity=amount,
            unit_symbol=registry.asset_id,
            source=funder,
            dest=reward_pool_address(),
            contract_id=f"fund_reward_pool_{funder}",
            metadata={'signer': funder},
        ),
    ]
    return build_transaction(
        view,
        moves,
        [UnitStateChange(unit=address, old_state=state, new_state=new_state)],
        origin=user_origin(funder, address, "FUND_REWARD_POOL"),
    )


def validate_amount(amount) -> Decimal:
    """Validate and normalize a token amount to a whole number of base units."""
    if isinstance(amount, bool) or not isinstance(amount, (int, Decimal)):
        raise InvalidAmount(f"amount must be an int or Decimal, got {type(amount).__name__}")
    amount = Decimal(amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"got {amount}")
    if amount != amount.to_integral_value():
        raise InvalidAmount(f"amount must be a whole number of base units, got {amount}")
    return amount
