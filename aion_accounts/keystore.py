"""Password-based keystore encryption in the V3 layout.

The secret key is encrypted with AES-128-CTR under the first 16 bytes of a
password-derived key; the MAC is BLAKE2b-256 over the second 16 bytes of
that key followed by the ciphertext. The MAC is the only password check and
is verified before anything is decrypted.

scrypt is the default and the only scheme the Aion kernel reads. PBKDF2
keystores are accepted on both paths only when
:attr:`AccountsConfig.allow_pbkdf2` is set.
"""

from __future__ import annotations

import hmac
import json
import logging
import os
import uuid
from typing import Any, Mapping

import pydantic
from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2, scrypt

from aion_accounts.config import AccountsConfig, default_config
from aion_accounts.errors import (
    AuthenticationError,
    InvalidKeystoreError,
    UnsupportedCipherError,
    UnsupportedKdfError,
)
from aion_accounts.identity import KeyPair, blake2b256, derive_address, key_pair_from_secret_key
from aion_accounts.types import (
    CipherParams,
    EncryptionOptions,
    KdfParams,
    KeystoreCrypto,
    KeystoreV3,
)

logger = logging.getLogger(__name__)

KEYSTORE_VERSION = 3
SUPPORTED_CIPHERS = ("aes-128-ctr",)
SUPPORTED_KDFS = ("scrypt", "pbkdf2")
PBKDF2_PRF = "hmac-sha256"
SALT_LENGTH = 32
IV_LENGTH = 16
CIPHER_KEY_LENGTH = 16

KeystoreLike = KeystoreV3 | Mapping[str, Any] | str


def _check_kdf(kdf: str, config: AccountsConfig) -> None:
    if kdf not in SUPPORTED_KDFS:
        raise UnsupportedKdfError(kdf)
    if kdf == "pbkdf2" and not config.allow_pbkdf2:
        raise UnsupportedKdfError(kdf)


def _check_cipher(cipher: str) -> None:
    if cipher not in SUPPORTED_CIPHERS:
        raise UnsupportedCipherError(cipher)


def _password_bytes(password: str | bytes) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    if isinstance(password, (bytes, bytearray)):
        return bytes(password)
    raise TypeError("password must be str or bytes")


def derive_key(password: str | bytes, kdf: str, params: KdfParams) -> bytes:
    """Run the keystore KDF over *password* with the stored parameters.

    Raises:
        InvalidKeystoreError: If the parameters are missing or out of range.
        UnsupportedKdfError: For an unknown KDF or pbkdf2 PRF.
    """
    try:
        salt = bytes.fromhex(params.salt)
    except ValueError as exc:
        raise InvalidKeystoreError(f"salt is not hex: {exc}") from exc
    secret = _password_bytes(password)
    if kdf == "scrypt":
        if params.n is None or params.r is None or params.p is None:
            raise InvalidKeystoreError("scrypt parameters n, r and p are required")
        if params.n < 2 or params.n & (params.n - 1):
            raise InvalidKeystoreError(f"scrypt n must be a power of two above 1, got {params.n}")
        if params.r < 1 or params.p < 1:
            raise InvalidKeystoreError("scrypt r and p must be at least 1")
        logger.debug("deriving key with scrypt n=%d r=%d p=%d", params.n, params.r, params.p)
        try:
            return scrypt(secret, salt, params.dklen, N=params.n, r=params.r, p=params.p)
        except ValueError as exc:
            raise InvalidKeystoreError(f"scrypt rejected the keystore parameters: {exc}") from exc
    if kdf == "pbkdf2":
        if params.c is None:
            raise InvalidKeystoreError("pbkdf2 parameter c is required")
        if params.c < 1:
            raise InvalidKeystoreError("pbkdf2 c must be at least 1")
        if (params.prf or PBKDF2_PRF) != PBKDF2_PRF:
            raise UnsupportedKdfError(f"pbkdf2/{params.prf}")
        logger.debug("deriving key with pbkdf2 c=%d", params.c)
        return PBKDF2(secret, salt, dkLen=params.dklen, count=params.c, hmac_hash_module=SHA256)
    raise UnsupportedKdfError(kdf)


def _mac(derived_key: bytes, ciphertext: bytes) -> bytes:
    return blake2b256(derived_key[16:32] + ciphertext)


def _aes_ctr(key: bytes, iv: bytes):
    # the whole 16-byte iv is the initial counter block
    return AES.new(key, AES.MODE_CTR, nonce=b"", initial_value=iv)


def encrypt(
    secret_key: bytes | str | KeyPair,
    password: str | bytes,
    options: EncryptionOptions | Mapping[str, Any] | None = None,
    *,
    config: AccountsConfig | None = None,
) -> KeystoreV3:
    """Encrypt a 64-byte secret key into a :class:`KeystoreV3`.

    Raises:
        UnsupportedKdfError: For an unknown KDF or a disabled pbkdf2.
        UnsupportedCipherError: For any cipher but ``aes-128-ctr``.
        InvalidKeyError: If the secret key is malformed.
    """
    config = config or default_config()
    if options is None:
        options = EncryptionOptions()
    elif not isinstance(options, EncryptionOptions):
        options = EncryptionOptions.model_validate(dict(options))

    _check_kdf(options.kdf, config)
    _check_cipher(options.cipher)

    kp = secret_key if isinstance(secret_key, KeyPair) else key_pair_from_secret_key(secret_key)

    salt = options.salt or os.urandom(SALT_LENGTH)
    iv = options.iv or os.urandom(IV_LENGTH)
    if options.kdf == "scrypt":
        kdfparams = KdfParams(
            dklen=options.dklen,
            salt=salt.hex(),
            n=options.resolved_n(config.fast_scrypt),
            r=options.r,
            p=options.p,
        )
    else:
        kdfparams = KdfParams(dklen=options.dklen, salt=salt.hex(), c=options.c, prf=PBKDF2_PRF)

    derived = derive_key(password, options.kdf, kdfparams)
    plaintext = bytearray(kp.secret_key)
    try:
        ciphertext = _aes_ctr(derived[:CIPHER_KEY_LENGTH], iv).encrypt(bytes(plaintext))
    finally:
        for i in range(len(plaintext)):
            plaintext[i] = 0

    key_id = uuid.UUID(bytes=options.uuid or os.urandom(16), version=4)
    address = derive_address(kp.public_key, config.network_tag)
    logger.debug("encrypted keystore id=%s kdf=%s", key_id, options.kdf)

    return KeystoreV3(
        version=KEYSTORE_VERSION,
        id=str(key_id),
        address=address[2:].lower(),
        crypto=KeystoreCrypto(
            ciphertext=ciphertext.hex(),
            cipherparams=CipherParams(iv=iv.hex()),
            cipher=options.cipher,
            kdf=options.kdf,
            kdfparams=kdfparams,
            mac=_mac(derived, ciphertext).hex(),
        ),
    )


def load_keystore(keystore: KeystoreLike, *, non_strict: bool = False) -> KeystoreV3:
    """Coerce a model, mapping or JSON text into a validated :class:`KeystoreV3`.

    With *non_strict*, JSON text is lowercased before parsing.

    Raises:
        InvalidKeystoreError: If the input is not a V3 keystore.
    """
    if isinstance(keystore, KeystoreV3):
        data: Any = keystore
    elif isinstance(keystore, str):
        try:
            data = json.loads(keystore.lower() if non_strict else keystore)
        except json.JSONDecodeError as exc:
            raise InvalidKeystoreError(f"keystore is not valid JSON: {exc}") from exc
    else:
        data = keystore

    if isinstance(data, KeystoreV3):
        version = data.version
    elif isinstance(data, Mapping):
        version = data.get("version")
    else:
        raise InvalidKeystoreError("keystore must be a JSON object")

    if version != KEYSTORE_VERSION:
        raise InvalidKeystoreError("Not a valid V3 wallet")
    if isinstance(data, KeystoreV3):
        return data
    try:
        return KeystoreV3.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        raise InvalidKeystoreError(f"malformed keystore: {exc}") from exc


def decrypt(
    keystore: KeystoreLike,
    password: str | bytes,
    *,
    config: AccountsConfig | None = None,
    non_strict: bool = False,
) -> KeyPair:
    """Recover the key pair sealed in a keystore.

    Raises:
        InvalidKeystoreError: If the keystore is not version 3 or malformed.
        UnsupportedKdfError: For an unknown KDF or a disabled pbkdf2.
        UnsupportedCipherError: For any cipher but ``aes-128-ctr``.
        AuthenticationError: If the MAC does not match (wrong password).
    """
    config = config or default_config()
    ks = load_keystore(keystore, non_strict=non_strict)
    crypto = ks.crypto

    _check_kdf(crypto.kdf, config)
    _check_cipher(crypto.cipher)
    if crypto.kdfparams.dklen < 32:
        raise InvalidKeystoreError("dklen must be at least 32")

    try:
        ciphertext = bytes.fromhex(crypto.ciphertext)
        iv = bytes.fromhex(crypto.cipherparams.iv)
        mac = bytes.fromhex(crypto.mac)
    except ValueError as exc:
        raise InvalidKeystoreError(f"keystore hex field is malformed: {exc}") from exc
    if len(iv) != IV_LENGTH:
        raise InvalidKeystoreError(f"iv must be {IV_LENGTH} bytes, got {len(iv)}")

    derived = derive_key(password, crypto.kdf, crypto.kdfparams)
    if not hmac.compare_digest(_mac(derived, ciphertext), mac):
        logger.info("keystore %s rejected: MAC mismatch", ks.id)
        raise AuthenticationError("Key derivation failed - possibly wrong password")

    plaintext = bytearray(_aes_ctr(derived[:CIPHER_KEY_LENGTH], iv).decrypt(ciphertext))
    try:
        return key_pair_from_secret_key(bytes(plaintext))
    finally:
        for i in range(len(plaintext)):
            plaintext[i] = 0
