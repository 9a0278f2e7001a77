"""Compact RLP form of a V3 keystore.

Layout, matching the kernel's keystore item::

    [id, version, address,
     [cipher, ciphertext, kdf, mac,
      [iv],
      ["", dklen, n, p, r, salt]]]

Text fields are UTF-8 byte strings and integers are minimal big-endian.
The empty first kdfparams slot is reserved and always written. Only scrypt
keystores have a compact form, since the layout has no room for pbkdf2's
iteration count.
"""

from __future__ import annotations

import logging
from typing import Any

import rlp
from rlp.exceptions import DecodingError
from rlp.sedes import big_endian_int

from aion_accounts.config import AccountsConfig
from aion_accounts.encoding import int_from_bytes, to_bytes
from aion_accounts.errors import MalformedKeystoreError, UnsupportedKdfError
from aion_accounts.identity import KeyPair
from aion_accounts.keystore import KeystoreLike, decrypt, encrypt, load_keystore
from aion_accounts.types import (
    CipherParams,
    EncryptionOptions,
    KdfParams,
    KeystoreCrypto,
    KeystoreV3,
)

logger = logging.getLogger(__name__)

RESERVED_SLOT = b""


def _text(value: str) -> bytes:
    return value.encode("utf-8")


def _int(value: int | None) -> bytes:
    return big_endian_int.serialize(value or 0)


def to_compact_form(keystore: KeystoreLike) -> bytes:
    """Serialise a keystore into its compact RLP form.

    Raises:
        UnsupportedKdfError: If the keystore does not use scrypt.
    """
    ks = load_keystore(keystore)
    crypto = ks.crypto
    if crypto.kdf != "scrypt":
        raise UnsupportedKdfError(crypto.kdf)
    params = crypto.kdfparams

    kdfparams = [
        RESERVED_SLOT,
        _int(params.dklen),
        _int(params.n),
        _int(params.p),
        _int(params.r),
        _text(params.salt),
    ]
    cipherparams = [_text(crypto.cipherparams.iv)]
    crypto_list = [
        _text(crypto.cipher),
        _text(crypto.ciphertext),
        _text(crypto.kdf),
        _text(crypto.mac),
        cipherparams,
        kdfparams,
    ]
    return rlp.encode([_text(ks.id), _int(ks.version), _text(ks.address), crypto_list])


def _as_list(item: Any, length: int, name: str, *, flat: bool = False) -> list[Any]:
    # older encoders nest each sub-list as an RLP-encoded byte string
    if isinstance(item, bytes):
        try:
            item = rlp.decode(item)
        except DecodingError as exc:
            raise MalformedKeystoreError(f"{name} is not valid RLP") from exc
    if not isinstance(item, list) or len(item) != length:
        raise MalformedKeystoreError(f"{name} must be a list of {length} items")
    if flat and not all(isinstance(element, bytes) for element in item):
        raise MalformedKeystoreError(f"{name} items must be byte strings")
    return item


def _str(value: Any, name: str) -> str:
    if not isinstance(value, bytes):
        raise MalformedKeystoreError(f"{name} must be a byte string")
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedKeystoreError(f"{name} is not UTF-8 text") from exc


def _num(value: Any, name: str) -> int:
    if not isinstance(value, bytes):
        raise MalformedKeystoreError(f"{name} must be a byte string")
    return int_from_bytes(value)


def from_compact_form(data: bytes | str) -> KeystoreV3:
    """Parse the compact RLP form back into a :class:`KeystoreV3`.

    Raises:
        MalformedKeystoreError: If the input is not RLP or the lists have
            the wrong number of items.
    """
    try:
        outer = rlp.decode(to_bytes(data))
    except (DecodingError, ValueError) as exc:
        raise MalformedKeystoreError(f"keystore is not valid RLP: {exc}") from exc
    if not isinstance(outer, list) or len(outer) != 4:
        raise MalformedKeystoreError("keystore must be a list of 4 items")

    crypto = _as_list(outer[3], 6, "crypto")
    cipherparams = _as_list(crypto[4], 1, "cipherparams", flat=True)
    kdfparams = _as_list(crypto[5], 6, "kdfparams", flat=True)

    return KeystoreV3(
        id=_str(outer[0], "id"),
        version=_num(outer[1], "version"),
        address=_str(outer[2], "address"),
        crypto=KeystoreCrypto(
            cipher=_str(crypto[0], "cipher"),
            ciphertext=_str(crypto[1], "ciphertext"),
            kdf=_str(crypto[2], "kdf"),
            mac=_str(crypto[3], "mac"),
            cipherparams=CipherParams(iv=_str(cipherparams[0], "iv")),
            kdfparams=KdfParams(
                dklen=_num(kdfparams[1], "dklen"),
                n=_num(kdfparams[2], "n"),
                p=_num(kdfparams[3], "p"),
                r=_num(kdfparams[4], "r"),
                salt=_str(kdfparams[5], "salt"),
            ),
        ),
    )


def encrypt_to_compact(
    secret_key: bytes | str | KeyPair,
    password: str | bytes,
    options: EncryptionOptions | None = None,
    *,
    config: AccountsConfig | None = None,
) -> bytes:
    """Encrypt a secret key straight into the compact form."""
    return to_compact_form(encrypt(secret_key, password, options, config=config))


def decrypt_from_compact(
    data: bytes | str,
    password: str | bytes,
    *,
    config: AccountsConfig | None = None,
) -> KeyPair:
    """Decrypt a keystore held in compact form."""
    ks = from_compact_form(data)
    logger.debug("decoded compact keystore id=%s", ks.id)
    return decrypt(ks, password, config=config)
