"""High-level account abstraction.

:class:`Account` bundles a key pair with its address and binds the signing
and encryption operations to it, so callers (including
:class:`~aion_accounts.wallet.Wallet`) never thread the secret key through
their own storage.
"""

from __future__ import annotations

from typing import Any, Mapping

from aion_accounts.config import AccountsConfig, default_config
from aion_accounts.identity import (
    KeyPair,
    create_key_pair,
    derive_address,
    key_pair_from_secret_key,
)
from aion_accounts.keystore import KeystoreLike, decrypt, encrypt
from aion_accounts.keystore_codec import decrypt_from_compact, to_compact_form
from aion_accounts.transaction import TransactionLike, sign_message, sign_transaction
from aion_accounts.types import (
    Address,
    EncryptionOptions,
    KeystoreV3,
    SignedMessage,
    SignedTransactionResult,
)


class Account:
    """An in-memory Aion account holding a single Ed25519 key pair.

    Accounts are created via the :meth:`create`, :meth:`from_secret_key`,
    :meth:`from_keystore` or :meth:`from_compact` class methods. The secret
    key is held in memory until :meth:`wipe` is called; it is never
    persisted automatically.
    """

    __slots__ = ("_key_pair", "_address", "_config")

    def __init__(self, key_pair: KeyPair, config: AccountsConfig | None = None) -> None:
        self._config = config or default_config()
        self._key_pair = key_pair
        self._address = derive_address(key_pair.public_key, self._config.network_tag)

    # ----- constructors ----------------------------------------------------

    @classmethod
    def create(
        cls, entropy: bytes | None = None, *, config: AccountsConfig | None = None
    ) -> "Account":
        """Generate an account from 32 bytes of entropy, or randomly."""
        return cls(create_key_pair(entropy), config)

    @classmethod
    def from_secret_key(
        cls, secret_key: bytes | str, *, config: AccountsConfig | None = None
    ) -> "Account":
        """Rebuild an account from its 64-byte secret key."""
        return cls(key_pair_from_secret_key(secret_key), config)

    @classmethod
    def from_keystore(
        cls,
        keystore: KeystoreLike,
        password: str | bytes,
        *,
        config: AccountsConfig | None = None,
        non_strict: bool = False,
    ) -> "Account":
        """Decrypt a V3 keystore (model, mapping or JSON text)."""
        kp = decrypt(keystore, password, config=config, non_strict=non_strict)
        return cls(kp, config)

    @classmethod
    def from_compact(
        cls, data: bytes | str, password: str | bytes, *, config: AccountsConfig | None = None
    ) -> "Account":
        """Decrypt a keystore held in compact RLP form."""
        return cls(decrypt_from_compact(data, password, config=config), config)

    # ----- properties ------------------------------------------------------

    @property
    def address(self) -> Address:
        """The ``0x``-prefixed lowercase address."""
        return self._address

    @property
    def public_key(self) -> bytes:
        """The raw 32-byte Ed25519 public key."""
        return self._key_pair.public_key

    @property
    def secret_key(self) -> bytes:
        """The raw 64-byte secret key."""
        return self._key_pair.secret_key

    @property
    def private_key(self) -> str:
        """The secret key as ``0x``-prefixed hex."""
        return "0x" + self.secret_key.hex()

    @property
    def key_pair(self) -> KeyPair:
        return self._key_pair

    # ----- bound operations ------------------------------------------------

    def sign_transaction(self, tx: TransactionLike) -> SignedTransactionResult:
        """Sign a fully specified transaction with this account's key."""
        return sign_transaction(tx, self._key_pair)

    def sign(self, data: str | bytes) -> SignedMessage:
        """Sign a personal message with this account's key."""
        return sign_message(data, self._key_pair)

    def encrypt(
        self,
        password: str | bytes,
        options: EncryptionOptions | Mapping[str, Any] | None = None,
    ) -> KeystoreV3:
        """Seal this account's key in a V3 keystore."""
        return encrypt(self._key_pair, password, options, config=self._config)

    def encrypt_to_compact(
        self,
        password: str | bytes,
        options: EncryptionOptions | Mapping[str, Any] | None = None,
    ) -> bytes:
        """Seal this account's key in a keystore and return its compact form."""
        return to_compact_form(self.encrypt(password, options))

    # ----- lifecycle -------------------------------------------------------

    def wipe(self) -> None:
        """Zero the secret key. The account is unusable for signing afterwards."""
        self._key_pair.wipe()

    def __enter__(self) -> "Account":
        return self

    def __exit__(self, *exc: object) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"Account(address={self._address})"
