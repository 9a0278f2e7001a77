"""In-memory collection of accounts with optional encrypted persistence.

:class:`Wallet` is a slot map: every added account gets the next value of a
monotonically increasing index and is also reachable by address (case
insensitive). Indexes of removed accounts are never reused.

Persistence is only available when a :class:`KeyValueStore` is injected;
headless callers simply omit it.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator, Mapping, Protocol

from aion_accounts.account import Account
from aion_accounts.config import AccountsConfig, default_config
from aion_accounts.errors import WalletStorageError
from aion_accounts.identity import KeyPair
from aion_accounts.keystore import KeystoreLike
from aion_accounts.types import EncryptionOptions, KeystoreV3

logger = logging.getLogger(__name__)

DEFAULT_KEY_NAME = "aion_accounts_wallet"


class KeyValueStore(Protocol):
    """Minimal string store used for wallet persistence."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class Wallet:
    """A keyed collection of :class:`Account` objects.

    Args:
        store: Optional backing store enabling :meth:`save` and :meth:`load`.
        config: Settings passed to every account the wallet builds.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        config: AccountsConfig | None = None,
        key_name: str = DEFAULT_KEY_NAME,
    ) -> None:
        self._store = store
        self._config = config or default_config()
        self.default_key_name = key_name
        self._slots: dict[int, Account] = {}
        self._by_address: dict[str, int] = {}
        self._next_index = 0

    # ----- lookup ----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Account]:
        return iter(list(self._slots.values()))

    def __contains__(self, key: object) -> bool:
        return self._index_of(key) is not None

    def __getitem__(self, key: int | str) -> Account:
        index = self._index_of(key)
        if index is None:
            raise KeyError(key)
        return self._slots[index]

    def _index_of(self, key: object) -> int | None:
        if isinstance(key, bool):
            return None
        if isinstance(key, int):
            return key if key in self._slots else None
        if isinstance(key, str):
            return self._by_address.get(key.lower())
        return None

    def index_of(self, key: int | str) -> int:
        """The slot index of an account given its index or address."""
        index = self._index_of(key)
        if index is None:
            raise KeyError(key)
        return index

    @property
    def indexes(self) -> list[int]:
        return list(self._slots)

    # ----- mutation --------------------------------------------------------

    def add(self, account: Account | KeyPair | bytes | str) -> Account:
        """Add an account, key pair or secret key.

        Adding an address that is already present returns the stored
        account unchanged.
        """
        if isinstance(account, Account):
            account = Account.from_secret_key(account.secret_key, config=self._config)
        elif isinstance(account, KeyPair):
            account = Account(KeyPair(account.secret_key, account.public_key), self._config)
        else:
            account = Account.from_secret_key(account, config=self._config)

        existing = self._by_address.get(account.address.lower())
        if existing is not None:
            account.wipe()
            return self._slots[existing]

        index = self._next_index
        self._next_index += 1
        self._slots[index] = account
        self._by_address[account.address.lower()] = index
        logger.debug("wallet added account index=%d address=%s", index, account.address)
        return account

    def create(self, count: int, entropy: bytes | None = None) -> "Wallet":
        """Generate and add *count* accounts."""
        for _ in range(count):
            account = Account.create(entropy, config=self._config)
            self.add(account)
            account.wipe()
        return self

    def remove(self, key: int | str) -> bool:
        """Remove an account by index or address and wipe its key.

        Returns:
            ``True`` if an account was removed.
        """
        index = self._index_of(key)
        if index is None:
            return False
        account = self._slots.pop(index)
        del self._by_address[account.address.lower()]
        account.wipe()
        logger.debug("wallet removed account index=%d", index)
        return True

    def clear(self) -> "Wallet":
        """Remove and wipe every account."""
        for index in list(self._slots):
            self.remove(index)
        return self

    # ----- keystores -------------------------------------------------------

    def encrypt(
        self,
        password: str | bytes,
        options: EncryptionOptions | Mapping[str, Any] | None = None,
    ) -> list[KeystoreV3]:
        """Encrypt every account, in index order."""
        return [self._slots[i].encrypt(password, options) for i in sorted(self._slots)]

    def decrypt(self, keystores: Iterable[KeystoreLike], password: str | bytes) -> "Wallet":
        """Decrypt keystores and add the recovered accounts."""
        for keystore in keystores:
            account = Account.from_keystore(keystore, password, config=self._config)
            self.add(account)
            account.wipe()
        return self

    # ----- persistence -----------------------------------------------------

    def _require_store(self) -> KeyValueStore:
        if self._store is None:
            raise WalletStorageError("wallet has no backing store")
        return self._store

    def save(self, password: str | bytes, key_name: str | None = None) -> bool:
        """Encrypt all accounts and write them to the backing store."""
        store = self._require_store()
        payload = json.dumps([ks.to_dict() for ks in self.encrypt(password)])
        store.set(key_name or self.default_key_name, payload)
        logger.info("wallet saved %d accounts", len(self))
        return True

    def load(self, password: str | bytes, key_name: str | None = None) -> "Wallet":
        """Read keystores from the backing store and decrypt them into the wallet."""
        store = self._require_store()
        raw = store.get(key_name or self.default_key_name)
        if not raw:
            return self
        try:
            keystores = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise WalletStorageError(f"stored wallet is not valid JSON: {exc}") from exc
        if not isinstance(keystores, list):
            raise WalletStorageError("stored wallet must be a list of keystores")
        return self.decrypt(keystores, password)
