"""Core types for the Aion accounts package.

All public-facing data structures are defined here as Pydantic v2 models.
Wire conventions: keys, hashes and signatures are ``0x``-prefixed lowercase
hex in results, keystore hex fields carry no prefix, and addresses are
``0x`` followed by 64 hex characters.
"""

from __future__ import annotations

import re
import time
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    GetCoreSchemaHandler,
    field_validator,
)
from pydantic_core import CoreSchema, core_schema

from aion_accounts.encoding import strip_0x, to_bytes, to_int

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64
# public key followed by the detached signature
PUB_SIG_LENGTH = PUBLIC_KEY_LENGTH + SIGNATURE_LENGTH


# ---------------------------------------------------------------------------
# Annotated scalar types
# ---------------------------------------------------------------------------

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class Address(str):
    """A 32-byte account address rendered as ``0x`` + 64 hex characters.

    Subclasses ``str`` so it serialises natively as a JSON string while
    still enforcing format on creation. Casing is preserved so checksum
    renderings survive validation.
    """

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(cls._validate)

    @classmethod
    def _validate(cls, v: str) -> "Address":
        if not isinstance(v, str):
            raise ValueError("Address must be a string")
        if not _ADDRESS_RE.match(v):
            raise ValueError("Address must be '0x' followed by 64 hex characters")
        return cls(v)

    def to_bytes(self) -> bytes:
        """The raw 32 address bytes."""
        return bytes.fromhex(self[2:])


class PublicKey(bytes):
    """32-byte Ed25519 public key."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(cls._validate)

    @classmethod
    def _validate(cls, v: bytes | str) -> "PublicKey":
        if isinstance(v, str):
            v = to_bytes(v)
        if len(v) != PUBLIC_KEY_LENGTH:
            raise ValueError(f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(v)}")
        return cls(v)


class Signature(bytes):
    """64-byte Ed25519 detached signature."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(cls._validate)

    @classmethod
    def _validate(cls, v: bytes | str) -> "Signature":
        if isinstance(v, str):
            v = to_bytes(v)
        if len(v) != SIGNATURE_LENGTH:
            raise ValueError(f"signature must be {SIGNATURE_LENGTH} bytes, got {len(v)}")
        return cls(v)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """An unsigned Aion transaction as supplied by the caller.

    Every field is optional at the model level; completeness and sign
    checks happen in :func:`aion_accounts.transaction.validate_transaction`
    so that rejection raises the package's own errors. Numeric fields accept
    ints, decimal strings and ``0x`` hex strings.
    """

    model_config = ConfigDict(populate_by_name=True)

    nonce: int | None = None
    to: str | None = None
    value: int | None = None
    data: bytes = b""
    timestamp: int | None = None
    gas: int | None = None
    gas_limit: int | None = Field(default=None, alias="gasLimit")
    gas_price: int | None = Field(default=None, alias="gasPrice")
    tx_type: int | None = Field(default=None, alias="type")
    chain_id: int | None = Field(default=None, alias="chainId")

    @field_validator(
        "nonce", "value", "timestamp", "gas", "gas_limit", "gas_price", "tx_type", "chain_id",
        mode="before",
    )
    @classmethod
    def _parse_int(cls, v: Any) -> int | None:
        return to_int(v)

    @field_validator("to", mode="before")
    @classmethod
    def _parse_to(cls, v: Any) -> str | None:
        if isinstance(v, (bytes, bytearray)):
            return "0x" + bytes(v).hex()
        if v in ("", "0x"):
            return None
        if isinstance(v, str):
            to_bytes(v)
        return v

    @field_validator("data", mode="before")
    @classmethod
    def _parse_data(cls, v: Any) -> bytes:
        if isinstance(v, (str, bytes, bytearray)) or v is None:
            return to_bytes(v)
        raise ValueError("data must be bytes or hex string")

    @property
    def effective_gas(self) -> int | None:
        """``gas`` if given, else ``gasLimit``."""
        return self.gas if self.gas is not None else self.gas_limit

    @property
    def effective_type(self) -> int:
        return self.tx_type or 1

    def resolved_timestamp(self) -> int:
        """The explicit timestamp, or the current Unix time in seconds."""
        if self.timestamp is not None:
            return self.timestamp
        return int(time.time())


class SignedTransactionResult(BaseModel):
    """Hex outputs of a successful transaction signing."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message_hash: str = Field(alias="messageHash")
    signature: str
    raw_transaction: str = Field(alias="rawTransaction")


class SignedMessage(BaseModel):
    """Result of signing a personal message."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str | bytes
    message_hash: str = Field(alias="messageHash")
    signature: str


# ---------------------------------------------------------------------------
# Keystore
# ---------------------------------------------------------------------------


def _lower_hex(v: Any) -> Any:
    if isinstance(v, str):
        return strip_0x(v).lower()
    return v


# hex text without prefix, lowercased so comparisons ignore case
HexStr = Annotated[str, BeforeValidator(_lower_hex)]


class CipherParams(BaseModel):
    """Parameters of the keystore stream cipher."""

    iv: HexStr


class KdfParams(BaseModel):
    """Key derivation parameters.

    scrypt keystores carry ``n``, ``r`` and ``p``; pbkdf2 keystores carry
    ``c`` and ``prf``. Fields of the other scheme stay ``None``.
    """

    dklen: Annotated[int, Field(ge=0)]
    salt: HexStr
    n: int | None = None
    r: int | None = None
    p: int | None = None
    c: int | None = None
    prf: str | None = None


class KeystoreCrypto(BaseModel):
    """The ``crypto`` block of a V3 keystore."""

    ciphertext: HexStr
    cipherparams: CipherParams
    cipher: str
    kdf: str
    kdfparams: KdfParams
    mac: HexStr


class KeystoreV3(BaseModel):
    """A password-encrypted secret key in the V3 keystore layout."""

    version: int
    id: str
    address: HexStr
    crypto: KeystoreCrypto

    def to_dict(self) -> dict[str, Any]:
        """The JSON-ready structure, without the unused KDF fields."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class EncryptionOptions(BaseModel):
    """Recognised options for keystore encryption.

    ``salt``, ``iv`` and ``uuid`` left as ``None`` are drawn fresh from the
    system random source on every call. ``n`` left as ``None`` resolves to
    8192, or 262144 when ``fast`` is off.
    """

    model_config = ConfigDict(frozen=True)

    kdf: str = "scrypt"
    salt: bytes | None = None
    iv: bytes | None = None
    cipher: str = "aes-128-ctr"
    dklen: Annotated[int, Field(ge=32)] = 32
    n: int | None = None
    r: Annotated[int, Field(ge=1)] = 8
    p: Annotated[int, Field(ge=1)] = 1
    c: Annotated[int, Field(ge=1)] = 262144
    uuid: bytes | None = None
    fast: bool | None = None

    @field_validator("salt", "iv", "uuid", mode="before")
    @classmethod
    def _parse_bytes(cls, v: Any) -> bytes | None:
        if v is None:
            return None
        return to_bytes(v)

    @field_validator("salt")
    @classmethod
    def _check_salt(cls, v: bytes | None) -> bytes | None:
        if v is not None and not v:
            raise ValueError("salt must not be empty")
        return v

    @field_validator("iv")
    @classmethod
    def _check_iv(cls, v: bytes | None) -> bytes | None:
        if v is not None and len(v) != 16:
            raise ValueError(f"iv must be 16 bytes, got {len(v)}")
        return v

    @field_validator("uuid")
    @classmethod
    def _check_uuid(cls, v: bytes | None) -> bytes | None:
        if v is not None and len(v) != 16:
            raise ValueError(f"uuid must be 16 bytes, got {len(v)}")
        return v

    @field_validator("n")
    @classmethod
    def _check_n(cls, v: int | None) -> int | None:
        if v is not None and (v < 2 or v & (v - 1)):
            raise ValueError("n must be a power of two greater than 1")
        return v

    def resolved_n(self, fast_default: bool = True) -> int:
        if self.n is not None:
            return self.n
        fast = fast_default if self.fast is None else self.fast
        return 8192 if fast else 262144
