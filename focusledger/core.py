"""
Core types and pure functions for the focus commitment ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: Move, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError, the ledger-level errors and the FocusError family
4. Type aliases: Positions, BalanceMap, UnitState
5. Calendar helpers: calendar_day(), day_gap(), time_until_next_day()
6. Transfer rules and unit factories: protocol_custody_rule, token(), create_record_unit()

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_DOWN, getcontext
from enum import Enum
import copy
import hashlib
from typing import (
    Dict, List, Set, Optional, Callable, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable,
)

from .addresses import is_protocol_custody, vault_authority_address


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Token quantities are Decimals holding whole base units. Bonus and penalty
# arithmetic floors explicitly, so the context only needs enough precision
# that intermediate products never round.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
_LEDGER_DECIMAL_CONTEXT = getcontext()
_LEDGER_DECIMAL_CONTEXT.prec = 50
_LEDGER_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Unit type constants (strings, not enum).
UNIT_TYPE_TOKEN = "TOKEN"
UNIT_TYPE_REGISTRY = "FOCUS_REGISTRY"
UNIT_TYPE_PROFILE = "FOCUS_PROFILE"
UNIT_TYPE_COMMITMENT = "FOCUS_COMMITMENT"
UNIT_TYPE_SESSION = "FOCUS_SESSION"

RECORD_UNIT_TYPES = frozenset({
    UNIT_TYPE_REGISTRY,
    UNIT_TYPE_PROFILE,
    UNIT_TYPE_COMMITMENT,
    UNIT_TYPE_SESSION,
})

# Quantities with absolute value below this threshold are treated as zero.
QUANTITY_EPSILON = Decimal("1e-12")

DECIMAL_ROUNDING = {
    UNIT_TYPE_TOKEN: ROUND_DOWN,
}

UNIX_EPOCH = datetime(1970, 1, 1)
ONE_DAY = timedelta(days=1)


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, Decimal]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, Decimal]

# Internal state for a unit (record fields for program records).
UnitState = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Compute functions accept a LedgerView to declare their read-only intent.
    The Ledger class implements this protocol but also provides mutation
    methods. For testing, FakeView provides a truly immutable implementation.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    @property
    def current_slot(self) -> int:
        """Return the ledger progress marker (monotonic slot counter)."""
        ...

    @property
    def slot_duration(self) -> timedelta:
        """Return the logical time one slot stands for."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Return the balance of a specific unit in a wallet.

        Returns Decimal("0") if the wallet holds nothing of the unit.
        """
        ...

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """Return a copy of the unit's internal state."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...

    def has_unit(self, symbol: str) -> bool:
        """Return True if a unit (record) exists at the given symbol."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    ALREADY_APPLIED: Transaction intent was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation; nothing was changed.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    USER_ACTION = "user_action"           # Participant-signed program operation
    CONTRACT = "contract"                 # Generated by a compute function without a signer


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class TransferRuleViolation(LedgerError):
    """Raised when a move violates the unit's transfer rule."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class TransactionRejected(LedgerError):
    """Raised when the ledger refuses a computed transaction (e.g. a stale-state conflict)."""

    def __init__(self, reason: str):
        super().__init__(f"transaction rejected: {reason}")
        self.reason = reason


class FocusError(LedgerError):
    """
    Base class for commitment program precondition failures.

    Each subclass carries a stable human-readable ``message``. Time-gated
    failures also carry ``retry_after``: how long the caller has to wait
    before the same operation can pass the gate.
    """
    message = "commitment program error"

    def __init__(self, detail: Optional[str] = None, retry_after: Optional[timedelta] = None):
        self.detail = detail
        self.retry_after = retry_after
        text = self.message if not detail else f"{self.message}: {detail}"
        super().__init__(text)


class InvalidSessionCount(FocusError):
    message = "invalid number of sessions per day"


class InvalidDayCount(FocusError):
    message = "invalid number of days for commitment"


class InvalidAmount(FocusError):
    message = "amount must be positive"


class DuplicateRegistry(FocusError):
    message = "registry already exists"


class DuplicateProfile(FocusError):
    message = "profile already exists for this owner"


class DuplicateCommitment(FocusError):
    message = "commitment id already used by this owner"


class DuplicateSession(FocusError):
    message = "session id already used for this commitment"


class AccountNotFound(FocusError):
    message = "account does not exist"


class InsufficientFunds(FocusError):
    message = "insufficient balance"


class CommitmentInactive(FocusError):
    message = "commitment is no longer active"


class CommitmentEnded(FocusError):
    message = "commitment period has ended"


class CommitmentNotEnded(FocusError):
    message = "commitment period has not ended yet"


class InvalidAuthority(FocusError):
    message = "invalid authority"


class DailySessionsCompleted(FocusError):
    message = "all daily sessions are already completed"


class SessionTooSoon(FocusError):
    message = "not enough time has passed since last session"


class SessionNotComplete(FocusError):
    message = "session duration requirement not met"


class SlotVerificationFailed(SessionNotComplete):
    message = "slot-based verification failed"


class SessionAlreadyCompleted(FocusError):
    message = "session is already marked as completed"


# ============================================================================
# CALENDAR HELPERS
# ============================================================================

def _utc_naive(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def calendar_day(ts: datetime) -> int:
    """
    Whole UTC days elapsed since 1970-01-01.

    Naive datetimes are taken to be UTC; aware ones are converted first.
    """
    return (_utc_naive(ts) - UNIX_EPOCH) // ONE_DAY


def day_gap(later: datetime, earlier: datetime) -> int:
    """Number of calendar-day boundaries between two timestamps."""
    return calendar_day(later) - calendar_day(earlier)


def time_until_next_day(ts: datetime) -> timedelta:
    """Time left until the next UTC midnight after ``ts``."""
    return ONE_DAY - (_utc_naive(ts) - UNIX_EPOCH) % ONE_DAY


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identifier of the caller (participant identity, "contract", ...)
        unit_symbol: Address of the record the operation targets (if applicable)
        event_type: Operation name (e.g., "OPEN_COMMITMENT", "COMPLETE_SESSION")
    """
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.unit_symbol:
            parts.append(f"unit={self.unit_symbol}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


def user_origin(caller: str, address: str, event_type: str) -> TransactionOrigin:
    """Origin for a participant-signed program operation."""
    return TransactionOrigin(
        origin_type=OriginType.USER_ACTION,
        source_id=caller,
        unit_symbol=address,
        event_type=event_type,
    )


# ============================================================================
# UNIT STATE CHANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class UnitStateChange:
    """
    Record of a unit state change.

    Stores complete before/after snapshots. The ledger compares old_state with
    the live record before applying new_state (optimistic concurrency), and the
    audit log keeps both for changed_fields() queries.

    Attributes:
        unit: Symbol (address) of the unit whose state changed
        old_state: Complete state before the change
        new_state: Complete state after the change
    """
    unit: str
    old_state: Any
    new_state: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new state.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
        """
        old = self.old_state if isinstance(self.old_state, dict) else {}
        new = self.new_state if isinstance(self.new_state, dict) else {}
        changes = {}
        for key in set(old.keys()) | set(new.keys()):
            old_val = old.get(key)
            new_val = new.get(key)
            if old_val != new_val:
                changes[key] = (old_val, new_val)
        return changes


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer (must be finite and non-zero).
        unit_symbol: The symbol of the unit being transferred (e.g., "FOCUS").
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the operation generating this move.
        metadata: Optional additional information (e.g., signing authority).
    """
    quantity: Decimal
    unit_symbol: str
    source: str
    dest: str
    contract_id: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if self.quantity.is_infinite() or self.quantity.is_nan():
            raise ValueError(f"Move quantity must be finite, got {self.quantity}")
        if abs(self.quantity) < QUANTITY_EPSILON:
            raise ValueError("Move quantity is effectively zero")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _normalize_decimal(d: Decimal) -> str:
    """
    Normalize a Decimal to a canonical string representation.

    Decimal("1.0") and Decimal("1.00") both become "1".
    """
    normalized = d.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Independent of dict insertion order, Decimal representation and nesting.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return f"D:{_normalize_decimal(value)}"
    if isinstance(value, (int, float)):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, timedelta):
        return f"TD:{value.total_seconds()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if isinstance(value, (set, frozenset)):
        serialized = ",".join(_canonicalize(item) for item in sorted(value, key=str))
        return f"<{serialized}>"
    return f"R:{repr(value)}"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    state_changes: Tuple[UnitStateChange, ...],
    origin: TransactionOrigin,
    units_to_create: Tuple['Unit', ...] = (),
    wallets_to_create: Tuple[str, ...] = (),
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    Based solely on semantic content, NOT on timestamps or ledger-specific
    data. Same inputs always produce the same intent_id. Used for
    idempotency checking.
    """
    sorted_moves = tuple(sorted(
        moves,
        key=lambda m: (_normalize_decimal(m.quantity), m.unit_symbol, m.source, m.dest, m.contract_id)
    ))

    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.unit_symbol:
        content_parts.append(f"unit:{origin.unit_symbol}")
    if origin.event_type:
        content_parts.append(f"event:{origin.event_type}")

    for wallet in sorted(wallets_to_create):
        content_parts.append(f"wallet_create:{wallet}")

    for unit in sorted(units_to_create, key=lambda u: u.symbol):
        content_parts.append(
            f"unit_create:{unit.symbol}|{unit.unit_type}|{_canonicalize(unit.state)}"
        )

    for m in sorted_moves:
        qty = _normalize_decimal(m.quantity)
        content_parts.append(f"move:{qty}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}")

    for sc in sorted(state_changes, key=lambda s: s.unit):
        old_canonical = _canonicalize(sc.old_state)
        new_canonical = _canonicalize(sc.new_state)
        content_parts.append(f"state_change:{sc.unit}|{old_canonical}|{new_canonical}")

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction specification before execution - represents INTENT.

    Created by compute functions and submitted to the ledger for execution.
    The ledger applies all of it or none of it.

    Attributes:
        moves: Tuple of value transfers between wallets
        state_changes: Tuple of record state changes (with old_state and new_state)
        origin: Who/what created this transaction and why
        timestamp: When this pending transaction was created
        units_to_create: Records (units) to create; rejected if the address is taken
        wallets_to_create: Wallets to register (e.g. a commitment's vault)
        intent_id: Content-addressable hash of the transaction intent (auto-computed)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    units_to_create: Tuple['Unit', ...] = ()
    wallets_to_create: Tuple[str, ...] = ()
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(
                self.moves, self.state_changes, self.origin,
                self.units_to_create, self.wallets_to_create,
            )
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction changes nothing."""
        return (
            not self.moves and not self.state_changes
            and not self.units_to_create and not self.wallets_to_create
        )

    def __repr__(self) -> str:
        return (
            f"PendingTransaction({len(self.moves)} moves, {len(self.state_changes)} deltas, "
            f"{len(self.units_to_create)} creates, {self.origin})"
        )


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    state_changes: Optional[List[UnitStateChange]] = None,
    origin: Optional[TransactionOrigin] = None,
    units_to_create: Optional[Tuple['Unit', ...]] = None,
    wallets_to_create: Optional[Tuple[str, ...]] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves, state deltas and creations.

    This is the standard way to create transactions.

    Args:
        view: Read-only ledger view (provides current_time)
        moves: List of moves to include in the transaction
        state_changes: Optional list of UnitStateChange objects
        origin: Transaction origin (defaults to CONTRACT origin)
        units_to_create: Optional tuple of Unit records to create
        wallets_to_create: Optional tuple of wallet ids to register

    Returns:
        A PendingTransaction ready for execution
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.CONTRACT,
            source_id="contract",
        )

    # Deep copy state changes to prevent mutation
    copied_changes: Tuple[UnitStateChange, ...] = ()
    if state_changes:
        copied_changes = tuple(
            UnitStateChange(
                unit=sc.unit,
                old_state=copy.deepcopy(sc.old_state),
                new_state=copy.deepcopy(sc.new_state),
            )
            for sc in state_changes
        )

    return PendingTransaction(
        moves=tuple(moves),
        state_changes=copied_changes,
        origin=origin,
        timestamp=view.current_time,
        units_to_create=tuple(units_to_create or ()),
        wallets_to_create=tuple(wallets_to_create or ()),
    )


def empty_pending_transaction(view: LedgerView) -> PendingTransaction:
    """Create an empty PendingTransaction (nothing to do)."""
    return PendingTransaction(
        moves=(),
        state_changes=(),
        origin=TransactionOrigin(OriginType.CONTRACT, "noop"),
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger state changes - represents FACT.

    Attributes:
        moves: Tuple of value transfers between wallets
        state_changes: Tuple of record state changes
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was created
        intent_id: Content hash (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        execution_slot: Slot counter at execution
        sequence_number: Monotonic sequence within the ledger
        units_to_create: Records created by this transaction
        wallets_to_create: Wallets registered by this transaction
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    execution_slot: int
    sequence_number: int
    units_to_create: Tuple['Unit', ...] = ()
    wallets_to_create: Tuple[str, ...] = ()
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if (not self.moves and not self.state_changes
                and not self.units_to_create and not self.wallets_to_create):
            raise ValueError("Transaction must change something")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        w = 100  # Inner content width
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id      : ' + self.intent_id)}│",
            f"│{pad('   timestamp      : ' + str(self.timestamp))}│",
            f"│{pad('   ledger_name    : ' + self.ledger_name)}│",
            f"│{pad('   execution_time : ' + str(self.execution_time))}│",
            f"│{pad('   execution_slot : ' + str(self.execution_slot))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   origin         : ' + str(self.origin))}│",
        ]
        if self.wallets_to_create:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Wallets Created (' + str(len(self.wallets_to_create)) + '):')}│")
            for wallet in self.wallets_to_create:
                lines.append(f"│{pad('   ' + wallet)}│")
        if self.units_to_create:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Records Created (' + str(len(self.units_to_create)) + '):')}│")
            for unit in self.units_to_create:
                lines.append(f"│{pad('   ' + unit.symbol + ' (' + unit.name + ')')}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Moves (' + str(len(self.moves)) + '):')}│")
        for i, move in enumerate(self.moves):
            move_str = f"   [{i}] {move.quantity} {move.unit_symbol}: {move.source} → {move.dest}"
            lines.append(f"│{pad(move_str)}│")
        if self.state_changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' State Changes (' + str(len(self.state_changes)) + '):')}│")
            for sc in self.state_changes:
                lines.append(f"│{pad('   [' + sc.unit + ']')}│")
                for field_name, (old_val, new_val) in sc.changed_fields().items():
                    lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


# Transfer rules validate moves and raise TransferRuleViolation if invalid.
TransferRule = Callable[[LedgerView, Move], None]


def _freeze_state(state: Optional[UnitState]) -> Tuple[Tuple[str, Any], ...]:
    """Convert a mutable state dict to a tuple of (key, value) pairs sorted by key."""
    if not state:
        return ()
    return tuple(sorted(state.items()))


def _thaw_state(frozen_state: Tuple[Tuple[str, Any], ...]) -> UnitState:
    """Convert a frozen state representation back to a mutable dict."""
    return dict(frozen_state)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a unit in the ledger: either a transferable token or an
    addressed program record (registry, profile, commitment, session).

    Attributes:
        symbol: Unique identifier (token symbol or derived record address).
        name: Human-readable name.
        unit_type: Category (TOKEN, FOCUS_COMMITMENT, ...).
        min_balance: Minimum allowed balance in any wallet.
        max_balance: Maximum allowed balance in any wallet.
        decimal_places: Number of decimal places for rounding (None = no rounding).
        transfer_rule: Optional function to validate moves involving this unit.
        _frozen_state: Internal frozen state representation (tuple of key-value pairs).
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: Decimal = Decimal("0")
    max_balance: Decimal = Decimal("Infinity")
    decimal_places: Optional[int] = None
    transfer_rule: Optional[TransferRule] = None
    _frozen_state: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def state(self) -> UnitState:
        """Get the unit's state as a new mutable dictionary."""
        return _thaw_state(self._frozen_state)

    @property
    def is_record(self) -> bool:
        return self.unit_type in RECORD_UNIT_TYPES

    def round(self, value: Decimal) -> Decimal:
        """
        Round a value to this unit's decimal precision using quantize.

        Returns the value unchanged if decimal_places is None.
        """
        if self.decimal_places is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        quantizer = Decimal(10) ** -self.decimal_places
        rounding_mode = DECIMAL_ROUNDING.get(self.unit_type, ROUND_HALF_EVEN)
        return value.quantize(quantizer, rounding=rounding_mode)


# ============================================================================
# TRANSFER RULES
# ============================================================================

def protocol_custody_rule(view: LedgerView, move: Move) -> None:
    """
    Only the protocol's vault authority may move value out of protocol custody.

    Vaults and the reward pool are protocol-custody wallets. A move debiting
    one of them must carry ``metadata['authority']`` equal to the vault
    authority address.

    Raises:
        TransferRuleViolation: If a custody wallet is debited without the authority.
    """
    if not is_protocol_custody(move.source):
        return
    authority = (move.metadata or {}).get('authority')
    if authority != vault_authority_address():
        raise TransferRuleViolation(
            f"{move.unit_symbol}: {move.source} is under protocol custody; "
            f"signed by {authority!r}, requires vault authority"
        )


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def token(symbol: str, name: str, decimals: int = 6) -> Unit:
    """
    Create a fungible staking token unit.

    Balances are held in whole base units (``decimals`` only documents the
    display scale, e.g. 100_000_000 base units = 100 tokens at 6 decimals).
    Balances cannot go negative, and protocol custody wallets are guarded by
    protocol_custody_rule.

    Args:
        symbol: Asset identifier (e.g., "FOCUS").
        name: Full name of the asset.
        decimals: Display decimals of one whole token (default: 6).

    Returns:
        A Unit configured for the staking asset.
    """
    if not symbol or not symbol.strip():
        raise ValueError("symbol cannot be empty")
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_TOKEN,
        min_balance=Decimal("0"),
        decimal_places=0,
        transfer_rule=protocol_custody_rule,
        _frozen_state=_freeze_state({'issuer': SYSTEM_WALLET, 'decimals': decimals}),
    )


def create_record_unit(address: str, name: str, unit_type: str, state: UnitState) -> Unit:
    """
    Create an addressed program record.

    Records hold no balances (min and max balance are zero); their content
    lives entirely in the unit state.
    """
    if unit_type not in RECORD_UNIT_TYPES:
        raise ValueError(f"unknown record type: {unit_type}")
    return Unit(
        symbol=address,
        name=name,
        unit_type=unit_type,
        min_balance=Decimal("0"),
        max_balance=Decimal("0"),
        decimal_places=0,
        _frozen_state=_freeze_state(state),
    )
