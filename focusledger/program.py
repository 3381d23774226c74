"""
program.py - Caller-facing commitment program

FocusProgram is the entry point participants (and tests) use. Every operation
reads fresh state from the ledger, asks a compute_* function for a
PendingTransaction, and submits it. Precondition failures surface as
FocusError subclasses raised by the compute function; anything the ledger
itself refuses (e.g. a record changed between compute and execute) surfaces as
TransactionRejected and can be retried by calling the operation again.
"""

from __future__ import annotations
from decimal import Decimal

from .addresses import (
    commitment_address, profile_address, registry_address,
    reward_pool_address, session_address, vault_address,
)
from .config import ProgramConfig, DEFAULT_CONFIG
from .core import (
    PendingTransaction, Transaction, ExecuteResult,
    AccountNotFound, TransactionRejected,
)
from .ledger import Ledger
from .settlement import SettlementResult
from .units import (
    CommitmentRecord, ProfileRecord, RegistryRecord, SessionRecord,
    load_commitment, load_profile, load_registry, load_session,
    preview_settlement,
    compute_create_registry, compute_fund_reward_pool, compute_create_profile,
    compute_open_commitment, compute_claim_rewards,
    compute_start_session, compute_complete_session,
)


class FocusProgram:
    """
    Commitment program bound to one ledger.

    Operations are serialized by the ledger; this class holds no state of its
    own beyond the ledger reference.

    Example:
        program = FocusProgram(ledger)
        program.create_registry("admin", "FOCUS", reward_rate_percent=10)
        program.create_profile("alice")
        c = program.open_commitment("alice", 1, Decimal(100_000_000), 2, 2)
        s = program.start_session("alice", c, 0)
        ledger.advance_time(ledger.current_time + timedelta(minutes=55))
        program.complete_session("alice", s)
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    @property
    def verbose(self) -> bool:
        return self.ledger.verbose

    def _submit(self, pending: PendingTransaction) -> Transaction:
        """Execute a computed transaction; anything but APPLIED raises."""
        result = self.ledger.execute(pending)
        if result == ExecuteResult.ALREADY_APPLIED:
            raise TransactionRejected(f"intent {pending.intent_id} already applied")
        if result == ExecuteResult.REJECTED:
            raise TransactionRejected(self.ledger.last_rejection or "rejected by ledger")
        return self.ledger.transaction_log[-1]

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[{self.ledger.current_time}] {message}")

    # ========================================================================
    # REGISTRY & PROFILES
    # ========================================================================

    def create_registry(
        self,
        authority: str,
        asset_id: str,
        reward_rate_percent: int,
        config: ProgramConfig = DEFAULT_CONFIG,
    ) -> str:
        """Create the program registry. Returns its address."""
        self._submit(compute_create_registry(
            self.ledger, authority, asset_id, reward_rate_percent, config
        ))
        self._log(f"registry created by {authority}: {asset_id}, reward rate {reward_rate_percent}%")
        return registry_address()

    def fund_reward_pool(self, funder: str, amount: Decimal) -> Transaction:
        tx = self._submit(compute_fund_reward_pool(self.ledger, funder, amount))
        self._log(f"{funder} funded reward pool with {amount}")
        return tx

    def create_profile(self, owner: str) -> str:
        """Create a participant profile. Returns its address."""
        self._submit(compute_create_profile(self.ledger, owner))
        self._log(f"profile created for {owner}")
        return profile_address(owner)

    # ========================================================================
    # COMMITMENTS & SESSIONS
    # ========================================================================

    def open_commitment(
        self,
        owner: str,
        commitment_id: int,
        amount: Decimal,
        sessions_per_day: int,
        total_days: int,
    ) -> str:
        """Stake ``amount`` against a session schedule. Returns the commitment address."""
        self._submit(compute_open_commitment(
            self.ledger, owner, commitment_id, amount, sessions_per_day, total_days
        ))
        self._log(
            f"{owner} opened commitment #{commitment_id}: {amount} staked, "
            f"{sessions_per_day} sessions/day for {total_days} days"
        )
        return commitment_address(owner, commitment_id)

    def start_session(self, caller: str, commitment: str, session_id: int) -> str:
        """Start a focus session. Returns the session address."""
        self._submit(compute_start_session(self.ledger, caller, commitment, session_id))
        self._log(f"{caller} started session {session_id}")
        return session_address(commitment, session_id)

    def complete_session(self, caller: str, session: str) -> SessionRecord:
        self._submit(compute_complete_session(self.ledger, caller, session))
        record = load_session(self.ledger, session)
        self._log(f"{caller} completed session {record.session_number}")
        return record

    def claim_rewards(self, caller: str, commitment: str) -> SettlementResult:
        """Settle an ended commitment. Returns the settlement that was paid."""
        pending = compute_claim_rewards(self.ledger, caller, commitment)
        result = preview_settlement(
            load_commitment(self.ledger, commitment), load_registry(self.ledger)
        )
        self._submit(pending)
        self._log(
            f"{caller} claimed {result.payout} ({result.tier}, "
            f"{result.completed_sessions}/{result.required_sessions} sessions)"
        )
        return result

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    def registry(self) -> RegistryRecord:
        return load_registry(self.ledger)

    def profile(self, owner: str) -> ProfileRecord:
        return load_profile(self.ledger, owner)

    def commitment(self, owner: str, commitment_id: int) -> CommitmentRecord:
        return load_commitment(self.ledger, commitment_address(owner, commitment_id))

    def session(self, commitment: str, session_id: int) -> SessionRecord:
        return load_session(self.ledger, session_address(commitment, session_id))

    def vault_balance(self, owner: str, commitment_id: int) -> Decimal:
        vault = vault_address(owner, commitment_id)
        if not self.ledger.is_registered(vault):
            raise AccountNotFound(f"no vault for {owner}#{commitment_id}")
        return self.ledger.get_balance(vault, self.registry().asset_id)

    def reward_pool_balance(self) -> Decimal:
        return self.ledger.get_balance(reward_pool_address(), self.registry().asset_id)

    def settlement_preview(self, owner: str, commitment_id: int) -> SettlementResult:
        """What claim_rewards would pay if the commitment ended now."""
        return preview_settlement(self.commitment(owner, commitment_id), self.registry())
