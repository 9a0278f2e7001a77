"""Exception hierarchy for the Aion accounts package.

Every error raised by the package derives from :class:`AccountsError`. All
operations are deterministic, so none of these are transient: retrying with
identical inputs always fails the same way. :class:`AuthenticationError` is
the only one where re-prompting the user (for a password) makes sense.
"""

from __future__ import annotations


class AccountsError(Exception):
    """Base class for all errors raised by ``aion_accounts``."""


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


class InvalidKeyError(AccountsError, ValueError):
    """Raised when entropy or key material has the wrong length or shape."""


# ---------------------------------------------------------------------------
# Transaction validation
# ---------------------------------------------------------------------------


class ValidationError(AccountsError, ValueError):
    """Raised when a transaction is rejected before hashing."""


class MissingFieldError(ValidationError):
    """Raised when a required transaction field is absent."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"missing required fields: {', '.join(fields)}")


class NegativeValueError(ValidationError):
    """Raised when a numeric transaction field is below zero."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"fields must not be negative: {', '.join(fields)}")


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


class SignatureError(AccountsError):
    """Base class for signature failures."""


class SignatureIntegrityError(SignatureError):
    """A freshly produced signature failed to verify.

    This points at a broken signing primitive, never at bad user input.
    """


class SignatureVerificationError(SignatureError):
    """A signature attached to a transaction or message does not verify."""


# ---------------------------------------------------------------------------
# Keystore
# ---------------------------------------------------------------------------


class KeystoreError(AccountsError):
    """Base class for keystore encryption and decoding failures."""


class UnsupportedKdfError(KeystoreError):
    """Raised for an unknown or disabled key derivation function."""

    def __init__(self, kdf: str) -> None:
        self.kdf = kdf
        super().__init__(f"unsupported key derivation scheme: {kdf!r}")


class UnsupportedCipherError(KeystoreError):
    """Raised for a cipher other than the supported stream cipher."""

    def __init__(self, cipher: str) -> None:
        self.cipher = cipher
        super().__init__(f"unsupported cipher: {cipher!r}")


class AuthenticationError(KeystoreError):
    """The keystore MAC did not match, usually because of a wrong password."""


class InvalidKeystoreError(KeystoreError, ValueError):
    """The keystore is not a structurally valid V3 keystore."""


class MalformedKeystoreError(KeystoreError, ValueError):
    """The compact binary keystore could not be decoded."""


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class WalletStorageError(AccountsError):
    """Raised when wallet persistence is requested without a backing store."""
