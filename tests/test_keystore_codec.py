"""Tests for the compact RLP keystore form."""

from __future__ import annotations

import pytest
import rlp

from aion_accounts.config import AccountsConfig
from aion_accounts.errors import (
    AuthenticationError,
    InvalidKeystoreError,
    MalformedKeystoreError,
    UnsupportedKdfError,
)
from aion_accounts.identity import create_key_pair
from aion_accounts.keystore import encrypt
from aion_accounts.keystore_codec import (
    decrypt_from_compact,
    encrypt_to_compact,
    from_compact_form,
    to_compact_form,
)
from aion_accounts.types import (
    CipherParams,
    EncryptionOptions,
    KdfParams,
    KeystoreCrypto,
    KeystoreV3,
)

PASSWORD = "hunter2"
CONFIG = AccountsConfig()
FAST = EncryptionOptions(n=1024)


def _sample_keystore(**crypto_overrides: object) -> KeystoreV3:
    crypto = {
        "ciphertext": "aa" * 64,
        "cipherparams": CipherParams(iv="bb" * 16),
        "cipher": "aes-128-ctr",
        "kdf": "scrypt",
        "kdfparams": KdfParams(dklen=32, salt="cc" * 32, n=8192, r=8, p=1),
        "mac": "dd" * 32,
    }
    crypto.update(crypto_overrides)
    return KeystoreV3(
        version=3,
        id="0f1e2d3c-4b5a-4968-8776-655443322110",
        address="a0" + "ee" * 31,
        crypto=KeystoreCrypto(**crypto),
    )


class TestLayout:
    """Field order of the compact form."""

    def test_nested_layout(self) -> None:
        ks = _sample_keystore()
        outer = rlp.decode(to_compact_form(ks))

        assert len(outer) == 4
        assert outer[0] == ks.id.encode()
        assert outer[1] == b"\x03"
        assert outer[2] == ks.address.encode()

        crypto = outer[3]
        assert crypto[:4] == [b"aes-128-ctr", b"aa" * 64, b"scrypt", b"dd" * 32]
        assert crypto[4] == [b"bb" * 16]
        assert crypto[5] == [b"", b"\x20", b"\x20\x00", b"\x01", b"\x08", b"cc" * 32]

    def test_reserved_slot_is_written(self) -> None:
        kdfparams = rlp.decode(to_compact_form(_sample_keystore()))[3][5]
        assert len(kdfparams) == 6
        assert kdfparams[0] == b""

    def test_pbkdf2_has_no_compact_form(self) -> None:
        ks = _sample_keystore(
            kdf="pbkdf2",
            kdfparams=KdfParams(dklen=32, salt="cc" * 32, c=1000, prf="hmac-sha256"),
        )
        with pytest.raises(UnsupportedKdfError):
            to_compact_form(ks)

    def test_wrong_version_rejected(self) -> None:
        ks = _sample_keystore().model_copy(update={"version": 2})
        with pytest.raises(InvalidKeystoreError):
            to_compact_form(ks)


class TestRoundTrip:
    """from_compact_form inverts to_compact_form."""

    def test_sample(self) -> None:
        ks = _sample_keystore()
        assert from_compact_form(to_compact_form(ks)) == ks

    def test_hex_input(self) -> None:
        ks = _sample_keystore()
        assert from_compact_form(to_compact_form(ks).hex()) == ks

    def test_hex_case_insensitive(self) -> None:
        ks = _sample_keystore(mac="DD" * 32)
        restored = from_compact_form(to_compact_form(ks))
        assert restored.crypto.mac == "dd" * 32
        assert restored == _sample_keystore()

    def test_encrypted_keystore(self) -> None:
        ks = encrypt(create_key_pair().secret_key, PASSWORD, FAST, config=CONFIG)
        assert from_compact_form(to_compact_form(ks)) == ks

    def test_large_parameters(self) -> None:
        params = KdfParams(dklen=64, salt="01" * 32, n=262144, r=16, p=4)
        ks = _sample_keystore(kdfparams=params)
        assert from_compact_form(to_compact_form(ks)).crypto.kdfparams == params

    def test_dict_input(self) -> None:
        ks = _sample_keystore()
        assert from_compact_form(to_compact_form(ks.to_dict())) == ks

    def test_legacy_wrapped_sublists(self) -> None:
        ks = _sample_keystore()
        outer = rlp.decode(to_compact_form(ks))
        crypto = outer[3]
        crypto[4] = rlp.encode(crypto[4])
        crypto[5] = rlp.encode(crypto[5])
        outer[3] = rlp.encode(crypto)
        assert from_compact_form(rlp.encode(outer)) == ks


class TestMalformed:
    """Structural rejection."""

    def test_not_rlp(self) -> None:
        with pytest.raises(MalformedKeystoreError):
            from_compact_form(b"\xff")

    def test_not_a_list(self) -> None:
        with pytest.raises(MalformedKeystoreError):
            from_compact_form(rlp.encode(b"keystore"))

    @pytest.mark.parametrize("length", [3, 5])
    def test_outer_length(self, length: int) -> None:
        outer = rlp.decode(to_compact_form(_sample_keystore()))
        outer = (outer + [b""])[:length]
        with pytest.raises(MalformedKeystoreError, match="4 items"):
            from_compact_form(rlp.encode(outer))

    @pytest.mark.parametrize("length", [5, 7])
    def test_crypto_length(self, length: int) -> None:
        outer = rlp.decode(to_compact_form(_sample_keystore()))
        outer[3] = (outer[3] + [b""])[:length]
        with pytest.raises(MalformedKeystoreError, match="6 items"):
            from_compact_form(rlp.encode(outer))

    def test_kdfparams_length(self) -> None:
        outer = rlp.decode(to_compact_form(_sample_keystore()))
        outer[3][5] = outer[3][5][:5]
        with pytest.raises(MalformedKeystoreError, match="kdfparams"):
            from_compact_form(rlp.encode(outer))

    def test_nested_list_in_text_field(self) -> None:
        outer = rlp.decode(to_compact_form(_sample_keystore()))
        outer[0] = [b"id"]
        with pytest.raises(MalformedKeystoreError, match="id"):
            from_compact_form(rlp.encode(outer))

    def test_invalid_utf8(self) -> None:
        outer = rlp.decode(to_compact_form(_sample_keystore()))
        outer[2] = b"\xff\xfe"
        with pytest.raises(MalformedKeystoreError, match="UTF-8"):
            from_compact_form(rlp.encode(outer))


class TestCompactEncryption:
    """Encrypt straight to, and decrypt straight from, the compact form."""

    def test_roundtrip(self) -> None:
        kp = create_key_pair()
        data = encrypt_to_compact(kp.secret_key, PASSWORD, FAST, config=CONFIG)
        assert decrypt_from_compact(data, PASSWORD, config=CONFIG).secret_key == kp.secret_key

    def test_wrong_password(self) -> None:
        data = encrypt_to_compact(create_key_pair().secret_key, PASSWORD, FAST, config=CONFIG)
        with pytest.raises(AuthenticationError):
            decrypt_from_compact(data, "wrong", config=CONFIG)

    def test_empty_cost_slot(self) -> None:
        data = encrypt_to_compact(create_key_pair().secret_key, PASSWORD, FAST, config=CONFIG)
        outer = rlp.decode(data)
        outer[3][5][2] = b""
        with pytest.raises(InvalidKeystoreError, match="power of two"):
            decrypt_from_compact(rlp.encode(outer), PASSWORD, config=CONFIG)
