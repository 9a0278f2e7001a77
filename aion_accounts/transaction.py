"""Transaction encoding, signing, and signer recovery.

The hashed payload is the RLP encoding of an 8-item list in a fixed
order::

    [nonce, to, value, data, timestamp, gas, gasPrice, type]

``nonce``, ``value`` and ``timestamp`` are minimal big-endian integers;
``gas``, ``gasPrice`` and ``type`` use the kernel's long wire form (see
:mod:`aion_accounts.encoding`). The message hash is BLAKE2b-256 of that
encoding. A signed transaction is the same list with a 9th item, the
96-byte ``public_key || signature`` blob, re-encoded.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import pydantic
import rlp
from rlp.exceptions import DecodingError, DeserializationError

from aion_accounts.config import AccountsConfig, default_config
from aion_accounts.encoding import UNSIGNED_TX_SEDES, to_bytes, to_hex
from aion_accounts.errors import (
    MissingFieldError,
    NegativeValueError,
    SignatureIntegrityError,
    SignatureVerificationError,
    ValidationError,
)
from aion_accounts.identity import (
    KeyPair,
    blake2b256,
    derive_address,
    key_pair_from_secret_key,
    sign_detached,
    verify_detached,
)
from aion_accounts.types import (
    PUB_SIG_LENGTH,
    PUBLIC_KEY_LENGTH,
    Address,
    PublicKey,
    Signature,
    SignedMessage,
    SignedTransactionResult,
    Transaction,
)

logger = logging.getLogger(__name__)

UNSIGNED_FIELD_COUNT = 8
MESSAGE_PREAMBLE = "Aion Signed Message:\n"

TransactionLike = Transaction | Mapping[str, Any]


def _as_transaction(tx: TransactionLike | None) -> Transaction:
    if tx is None:
        raise MissingFieldError(["transaction"])
    if isinstance(tx, Transaction):
        return tx
    try:
        return Transaction.model_validate(dict(tx))
    except (pydantic.ValidationError, TypeError) as exc:
        raise ValidationError(f"malformed transaction: {exc}") from exc


def _as_key_pair(secret_key: bytes | str | KeyPair) -> KeyPair:
    if isinstance(secret_key, KeyPair):
        return secret_key
    return key_pair_from_secret_key(secret_key)


# ---------------------------------------------------------------------------
# Validation and canonical encoding
# ---------------------------------------------------------------------------


def validate_transaction(tx: TransactionLike | None) -> Transaction:
    """Check that *tx* is complete and non-negative.

    Signing never looks up a nonce or gas price remotely, so both must be
    supplied by the caller.

    Raises:
        MissingFieldError: If ``nonce``, ``gasPrice`` or both of
            ``gas``/``gasLimit`` are absent.
        NegativeValueError: If a numeric field is below zero.
    """
    tx = _as_transaction(tx)

    missing: list[str] = []
    if tx.nonce is None:
        missing.append("nonce")
    if tx.gas is None and tx.gas_limit is None:
        missing.append("gas")
    if tx.gas_price is None:
        missing.append("gasPrice")
    if missing:
        raise MissingFieldError(missing)

    checked = {
        "nonce": tx.nonce,
        "gas": tx.gas,
        "gasLimit": tx.gas_limit,
        "gasPrice": tx.gas_price,
        "chainId": tx.chain_id,
        "type": tx.tx_type,
        "value": tx.value,
        "timestamp": tx.timestamp,
    }
    negative = [name for name, val in checked.items() if val is not None and val < 0]
    if negative:
        raise NegativeValueError(negative)
    return tx


def transaction_fields(tx: Transaction) -> list[Any]:
    """The 8 canonical items of *tx*, before serialisation."""
    return [
        tx.nonce,
        to_bytes(tx.to.lower() if tx.to else None),
        tx.value or 0,
        tx.data,
        tx.resolved_timestamp(),
        tx.effective_gas,
        tx.gas_price,
        tx.effective_type,
    ]


def encode_transaction(tx: TransactionLike) -> bytes:
    """Validate *tx* and return its canonical RLP encoding."""
    tx = validate_transaction(tx)
    return rlp.encode(transaction_fields(tx), sedes=UNSIGNED_TX_SEDES)


def hash_transaction(tx: TransactionLike) -> bytes:
    """BLAKE2b-256 of the canonical encoding."""
    return blake2b256(encode_transaction(tx))


def decode_transaction(raw: bytes | str) -> Transaction:
    """Parse a raw (signed or unsigned) transaction into a model.

    The signature, if any, is neither checked nor returned; use
    :func:`recover_transaction` for that.
    """
    items = _decode_items(raw)
    try:
        nonce, to, value, data, timestamp, gas, gas_price, tx_type = UNSIGNED_TX_SEDES.deserialize(
            items[:UNSIGNED_FIELD_COUNT]
        )
    except DeserializationError as exc:
        raise ValidationError(f"malformed transaction fields: {exc}") from exc
    return Transaction(
        nonce=nonce,
        to=to or None,
        value=value,
        data=data,
        timestamp=timestamp,
        gas=gas,
        gas_price=gas_price,
        tx_type=tx_type,
    )


def _decode_items(raw: bytes | str) -> list[Any]:
    try:
        items = rlp.decode(to_bytes(raw))
    except (DecodingError, ValueError) as exc:
        raise ValidationError(f"raw transaction is not valid RLP: {exc}") from exc
    if not isinstance(items, list) or len(items) not in (
        UNSIGNED_FIELD_COUNT,
        UNSIGNED_FIELD_COUNT + 1,
    ):
        raise ValidationError("raw transaction must be an RLP list of 8 or 9 items")
    return items


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def _sign_hash(digest: bytes, kp: KeyPair) -> bytes:
    """Sign *digest*, self-verify, and return the ``public_key || signature`` blob."""
    signature = sign_detached(digest, kp.secret_key)
    if not verify_detached(digest, signature, kp.public_key):
        raise SignatureIntegrityError("could not verify freshly produced signature")
    blob = kp.public_key + signature
    if len(blob) != PUB_SIG_LENGTH:
        raise SignatureIntegrityError(f"signature blob must be {PUB_SIG_LENGTH} bytes")
    return blob


def sign_transaction(
    tx: TransactionLike | None, secret_key: bytes | str | KeyPair
) -> SignedTransactionResult:
    """Sign a transaction with a 64-byte secret key.

    Validation runs before any hashing, so a rejected transaction produces
    no output at all.

    Returns:
        A :class:`SignedTransactionResult` with the message hash, the
        96-byte signature blob and the signed raw transaction, all hex.

    Raises:
        ValidationError: If the transaction is incomplete or negative.
        SignatureIntegrityError: If the signature fails self-verification.
    """
    tx = validate_transaction(tx)
    kp = _as_key_pair(secret_key)

    encoded = rlp.encode(transaction_fields(tx), sedes=UNSIGNED_TX_SEDES)
    digest = blake2b256(encoded)
    blob = _sign_hash(digest, kp)

    items = rlp.decode(encoded)
    items.append(blob)
    raw = rlp.encode(items)

    logger.debug("signed transaction nonce=%s hash=%s", tx.nonce, digest.hex())
    return SignedTransactionResult(
        message_hash=to_hex(digest),
        signature=to_hex(blob),
        raw_transaction=to_hex(raw),
    )


def _split_blob(blob: bytes) -> tuple[PublicKey, Signature]:
    if len(blob) != PUB_SIG_LENGTH:
        raise SignatureVerificationError(
            f"signature blob must be {PUB_SIG_LENGTH} bytes, got {len(blob)}"
        )
    return (
        PublicKey._validate(blob[:PUBLIC_KEY_LENGTH]),
        Signature._validate(blob[PUBLIC_KEY_LENGTH:]),
    )


def recover_transaction(raw: bytes | str, *, config: AccountsConfig | None = None) -> Address:
    """Return the signer address of a raw signed transaction.

    The embedded public key is trusted only after its signature verifies
    against the hash of the re-encoded unsigned fields. The address carries
    the network tag of *config*.

    Raises:
        SignatureVerificationError: If the input is not a signed
            transaction or the signature does not verify.
    """
    try:
        items = rlp.decode(to_bytes(raw))
    except (DecodingError, ValueError, TypeError) as exc:
        raise SignatureVerificationError(f"raw transaction is not valid RLP: {exc}") from exc
    if not isinstance(items, list) or len(items) != UNSIGNED_FIELD_COUNT + 1:
        raise SignatureVerificationError("raw transaction does not carry a signature")
    blob = items[-1]
    if not isinstance(blob, bytes):
        raise SignatureVerificationError("signature item must be a byte string")

    public_key, signature = _split_blob(blob)
    digest = blake2b256(rlp.encode(items[:UNSIGNED_FIELD_COUNT]))
    if not verify_detached(digest, signature, public_key):
        logger.warning("rejected transaction with invalid signature hash=%s", digest.hex())
        raise SignatureVerificationError("transaction signature does not verify")
    return derive_address(public_key, (config or default_config()).network_tag)


# ---------------------------------------------------------------------------
# Personal messages
# ---------------------------------------------------------------------------


def _message_bytes(data: str | bytes) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if data.startswith("0x"):
        try:
            return bytes.fromhex(data[2:])
        except ValueError:
            pass
    return data.encode("utf-8")


def hash_message(data: str | bytes) -> bytes:
    """Hash a personal message with the Aion preamble.

    ``blake2b256("Aion Signed Message:\\n" + len(message) + message)``.
    ``0x``-hex strings are signed as the bytes they encode.
    """
    message = _message_bytes(data)
    preamble = f"{MESSAGE_PREAMBLE}{len(message)}".encode("utf-8")
    return blake2b256(preamble + message)


def sign_message(data: str | bytes, secret_key: bytes | str | KeyPair) -> SignedMessage:
    """Sign a personal message; the signature is the 96-byte blob."""
    kp = _as_key_pair(secret_key)
    digest = hash_message(data)
    blob = _sign_hash(digest, kp)
    return SignedMessage(message=data, message_hash=to_hex(digest), signature=to_hex(blob))


def recover_message(
    message: str | bytes, signature: bytes | str, *, config: AccountsConfig | None = None
) -> Address:
    """Return the signer address of a message after verifying its signature.

    Raises:
        SignatureVerificationError: If the signature does not verify.
    """
    try:
        blob = to_bytes(signature)
    except (ValueError, TypeError) as exc:
        raise SignatureVerificationError(str(exc)) from exc
    public_key, sig = _split_blob(blob)
    if not verify_detached(hash_message(message), sig, public_key):
        raise SignatureVerificationError("message signature does not verify")
    return derive_address(public_key, (config or default_config()).network_tag)
