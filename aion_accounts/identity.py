"""Aion identity primitives: key pairs, address derivation, checksums, signing.

All signature operations use Ed25519 via PyNaCl (libsodium binding) and all
hashing uses BLAKE2b with a 32-byte digest. An address is the network tag
byte followed by the last 31 bytes of the public key hash.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from aion_accounts.config import A0_IDENTIFIER
from aion_accounts.encoding import strip_0x, to_bytes
from aion_accounts.errors import InvalidKeyError
from aion_accounts.types import (
    PUBLIC_KEY_LENGTH,
    SECRET_KEY_LENGTH,
    SEED_LENGTH,
    Address,
)

logger = logging.getLogger(__name__)

_HEX_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def blake2b256(data: bytes) -> bytes:
    """BLAKE2b with a 32-byte digest."""
    return hashlib.blake2b(data, digest_size=32).digest()


# ---------------------------------------------------------------------------
# Key pairs
# ---------------------------------------------------------------------------


class KeyPair:
    """An Ed25519 key pair in NaCl layout.

    The 64-byte secret key is ``seed || public_key``. It lives in a mutable
    buffer so :meth:`wipe` can zero it once the caller is done; a wiped key
    pair raises :class:`InvalidKeyError` on any further secret access.
    """

    __slots__ = ("_secret_key", "_public_key")

    def __init__(self, secret_key: bytes, public_key: bytes) -> None:
        if len(secret_key) != SECRET_KEY_LENGTH:
            raise InvalidKeyError(
                f"secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret_key)}"
            )
        if len(public_key) != PUBLIC_KEY_LENGTH:
            raise InvalidKeyError(
                f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
            )
        self._secret_key: bytearray | None = bytearray(secret_key)
        self._public_key = bytes(public_key)

    @property
    def secret_key(self) -> bytes:
        """The 64-byte secret key (a copy)."""
        if self._secret_key is None:
            raise InvalidKeyError("key pair has been wiped")
        return bytes(self._secret_key)

    @property
    def seed(self) -> bytes:
        """The 32-byte Ed25519 seed, the first half of the secret key."""
        return self.secret_key[:SEED_LENGTH]

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def wiped(self) -> bool:
        return self._secret_key is None

    def wipe(self) -> None:
        """Zero the secret key buffer and drop it."""
        if self._secret_key is not None:
            for i in range(len(self._secret_key)):
                self._secret_key[i] = 0
            self._secret_key = None

    def __enter__(self) -> "KeyPair":
        return self

    def __exit__(self, *exc: object) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self._public_key.hex()})"


def _key_pair_from_signing_key(sk: SigningKey) -> KeyPair:
    pk = bytes(sk.verify_key)
    return KeyPair(bytes(sk) + pk, pk)


def create_key_pair(entropy: bytes | None = None) -> KeyPair:
    """Derive a key pair from a 32-byte seed, drawing a random one if omitted.

    Raises:
        InvalidKeyError: If *entropy* is not exactly 32 bytes.
    """
    if entropy is None:
        entropy = os.urandom(SEED_LENGTH)
    else:
        entropy = to_bytes(entropy)
    if len(entropy) != SEED_LENGTH:
        raise InvalidKeyError(f"entropy must be exactly {SEED_LENGTH} bytes, got {len(entropy)}")
    return _key_pair_from_signing_key(SigningKey(entropy))


def key_pair_from_secret_key(secret_key: bytes | str) -> KeyPair:
    """Rebuild a key pair from a 64-byte NaCl secret key.

    Accepts raw bytes or (``0x``-)hex text.

    Raises:
        InvalidKeyError: If the key has the wrong length or its embedded
            public key does not belong to its seed.
    """
    try:
        raw = to_bytes(secret_key)
    except (TypeError, ValueError) as exc:
        raise InvalidKeyError(str(exc)) from exc
    if len(raw) != SECRET_KEY_LENGTH:
        raise InvalidKeyError(f"secret key must be {SECRET_KEY_LENGTH} bytes, got {len(raw)}")
    kp = _key_pair_from_signing_key(SigningKey(raw[:SEED_LENGTH]))
    if kp.public_key != raw[SEED_LENGTH:]:
        kp.wipe()
        raise InvalidKeyError("secret key does not embed the public key of its seed")
    return kp


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def derive_address(public_key: bytes, network_tag: int = A0_IDENTIFIER) -> Address:
    """Compute the account address of an Ed25519 public key.

    ``network_tag || blake2b256(public_key)[1:32]`` as ``0x`` + 64 hex chars.
    """
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyError(
            f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
        )
    digest = blake2b256(bytes(public_key))
    return Address("0x" + (bytes([network_tag]) + digest[1:32]).hex())


def is_account_address(value: object) -> bool:
    """True for 64 hex characters with an optional ``0x`` prefix."""
    return isinstance(value, str) and _HEX_ADDRESS_RE.match(value) is not None


def equal_addresses(a: str, b: str) -> bool:
    """Compare two addresses ignoring prefix and case."""
    return strip_0x(a.lower()) == strip_0x(b.lower())


def _bit(data: bytes, index: int) -> int:
    return (data[index // 8] >> (index % 8)) & 0x1


def create_checksum_address(address: str) -> str:
    """Render an address with its checksum encoded in the letter casing.

    Hex letter ``i`` is uppercased when bit ``i`` of the BLAKE2b-256 hash of
    the address bytes is set. Digits are left alone.
    """
    if not is_account_address(address):
        raise ValueError(f"not an account address: {address!r}")
    plain = strip_0x(address.lower())
    digest = blake2b256(bytes.fromhex(plain))
    chars = [
        ch if ch.isdigit() else (ch.upper() if _bit(digest, i) else ch)
        for i, ch in enumerate(plain)
    ]
    return "0x" + "".join(chars)


def is_valid_checksum_address(address: str) -> bool:
    """True when *address* equals its own checksum rendering, case-sensitively."""
    if not is_account_address(address):
        return False
    return address == create_checksum_address(address)


# ---------------------------------------------------------------------------
# Detached signatures
# ---------------------------------------------------------------------------


def sign_detached(message: bytes, secret_key: bytes) -> bytes:
    """Sign *message* and return the 64-byte detached signature.

    *secret_key* may be the 32-byte seed or the 64-byte NaCl secret key.
    """
    seed = bytes(secret_key[:SEED_LENGTH])
    if len(seed) != SEED_LENGTH:
        raise InvalidKeyError(f"secret key must hold a {SEED_LENGTH}-byte seed")
    return SigningKey(seed).sign(message).signature


def verify_detached(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """Check a detached Ed25519 signature.

    Returns:
        ``True`` if the signature is valid, ``False`` otherwise (including a
        malformed key or signature).
    """
    try:
        VerifyKey(bytes(public_key)).verify(message, bytes(signature))
    except (BadSignatureError, ValueError, TypeError):
        return False
    return True
