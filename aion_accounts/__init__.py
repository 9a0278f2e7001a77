"""Aion accounts for Python.

Key pair and address derivation, transaction signing under the Aion RLP
encoding, and password-encrypted V3 keystores in JSON or compact RLP form.
Nothing here touches the network: every operation is local and
synchronous.

Quick start::

    from aion_accounts import Account

    account = Account.create()
    signed = account.sign_transaction(
        {"nonce": 0, "to": other, "value": 1, "gas": 21000, "gasPrice": 10**10}
    )
    keystore = account.encrypt("correct horse")
"""

import logging

from aion_accounts.account import Account
from aion_accounts.config import AccountsConfig, default_config
from aion_accounts.errors import (
    AccountsError,
    AuthenticationError,
    InvalidKeyError,
    InvalidKeystoreError,
    KeystoreError,
    MalformedKeystoreError,
    MissingFieldError,
    NegativeValueError,
    SignatureError,
    SignatureIntegrityError,
    SignatureVerificationError,
    UnsupportedCipherError,
    UnsupportedKdfError,
    ValidationError,
    WalletStorageError,
)
from aion_accounts.identity import (
    KeyPair,
    create_checksum_address,
    create_key_pair,
    derive_address,
    equal_addresses,
    is_account_address,
    is_valid_checksum_address,
    key_pair_from_secret_key,
)
from aion_accounts.keystore import decrypt, encrypt
from aion_accounts.keystore_codec import (
    decrypt_from_compact,
    encrypt_to_compact,
    from_compact_form,
    to_compact_form,
)
from aion_accounts.transaction import (
    decode_transaction,
    encode_transaction,
    hash_message,
    hash_transaction,
    recover_message,
    recover_transaction,
    sign_message,
    sign_transaction,
    validate_transaction,
)
from aion_accounts.types import (
    Address,
    EncryptionOptions,
    KeystoreV3,
    SignedMessage,
    SignedTransactionResult,
    Transaction,
)
from aion_accounts.wallet import KeyValueStore, Wallet

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Accounts
    "Account",
    "Wallet",
    "KeyValueStore",
    # Config
    "AccountsConfig",
    "default_config",
    # Errors
    "AccountsError",
    "AuthenticationError",
    "InvalidKeyError",
    "InvalidKeystoreError",
    "KeystoreError",
    "MalformedKeystoreError",
    "MissingFieldError",
    "NegativeValueError",
    "SignatureError",
    "SignatureIntegrityError",
    "SignatureVerificationError",
    "UnsupportedCipherError",
    "UnsupportedKdfError",
    "ValidationError",
    "WalletStorageError",
    # Identity
    "KeyPair",
    "create_checksum_address",
    "create_key_pair",
    "derive_address",
    "equal_addresses",
    "is_account_address",
    "is_valid_checksum_address",
    "key_pair_from_secret_key",
    # Keystore
    "decrypt",
    "encrypt",
    "decrypt_from_compact",
    "encrypt_to_compact",
    "from_compact_form",
    "to_compact_form",
    # Transactions and messages
    "decode_transaction",
    "encode_transaction",
    "hash_message",
    "hash_transaction",
    "recover_message",
    "recover_transaction",
    "sign_message",
    "sign_transaction",
    "validate_transaction",
    # Types
    "Address",
    "EncryptionOptions",
    "KeystoreV3",
    "SignedMessage",
    "SignedTransactionResult",
    "Transaction",
]

__version__ = "0.1.0"
