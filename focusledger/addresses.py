"""
addresses.py - Deterministic record and wallet addressing

Every record the program stores (registry, profile, commitment, session) and
every custody wallet (vault, reward pool, vault authority) lives at an address
derived from a purpose tag and a list of seeds. An address is only a lookup
key: it carries no ownership, and deriving it twice from the same seeds always
gives the same string.

    derive_address("commitment", "alice", 7)
        -> "commitment:3f1c..."   (tag + first 32 hex digits of a SHA-256)

Seeds are length-prefixed before hashing so ("ab", "c") and ("a", "bc") can
never collide.
"""

from __future__ import annotations
import hashlib
from typing import Union

Seed = Union[str, int, bytes]

REGISTRY_TAG = "focus_program"
PROFILE_TAG = "user_profile"
COMMITMENT_TAG = "commitment"
VAULT_TAG = "vault"
SESSION_TAG = "session"
VAULT_AUTHORITY_TAG = "vault_authority"
REWARD_POOL_TAG = "reward_pool"

# Wallets whose balances only the vault authority may debit.
PROTOCOL_CUSTODY_TAGS = (VAULT_TAG, REWARD_POOL_TAG)

_DIGEST_HEX_CHARS = 32


def _seed_bytes(seed: Seed) -> bytes:
    if isinstance(seed, bool):
        raise TypeError("bool is not a valid address seed")
    if isinstance(seed, int):
        if seed < 0:
            raise ValueError(f"integer seeds must be non-negative, got {seed}")
        # u64 little-endian, wider ids get as many bytes as they need
        width = max(8, (seed.bit_length() + 7) // 8)
        return seed.to_bytes(width, "little")
    if isinstance(seed, str):
        if not seed:
            raise ValueError("string seeds cannot be empty")
        return seed.encode("utf-8")
    if isinstance(seed, bytes):
        return seed
    raise TypeError(f"unsupported seed type: {type(seed).__name__}")


def derive_address(tag: str, *seeds: Seed) -> str:
    """
    Derive the lookup key for a record or wallet.

    Args:
        tag: Purpose tag (e.g. "commitment"); also the address prefix.
        *seeds: Identities and numeric ids that make the address unique.

    Returns:
        "<tag>:<hex digest>"
    """
    if not tag or ":" in tag:
        raise ValueError(f"invalid address tag: {tag!r}")
    h = hashlib.sha256()
    for part in (tag.encode("utf-8"), *(_seed_bytes(s) for s in seeds)):
        h.update(len(part).to_bytes(4, "little"))
        h.update(part)
    return f"{tag}:{h.hexdigest()[:_DIGEST_HEX_CHARS]}"


def address_tag(address: str) -> str:
    """Return the purpose tag of a derived address ("" for plain wallet ids)."""
    tag, sep, _ = address.partition(":")
    return tag if sep else ""


def is_protocol_custody(address: str) -> bool:
    return address_tag(address) in PROTOCOL_CUSTODY_TAGS


def registry_address() -> str:
    return derive_address(REGISTRY_TAG)


def profile_address(owner: str) -> str:
    return derive_address(PROFILE_TAG, owner)


def commitment_address(owner: str, commitment_id: int) -> str:
    return derive_address(COMMITMENT_TAG, owner, commitment_id)


def vault_address(owner: str, commitment_id: int) -> str:
    return derive_address(VAULT_TAG, owner, commitment_id)


def session_address(commitment: str, session_id: int) -> str:
    return derive_address(SESSION_TAG, commitment, session_id)


def vault_authority_address() -> str:
    return derive_address(VAULT_AUTHORITY_TAG)


def reward_pool_address() -> str:
    return derive_address(REWARD_POOL_TAG)
