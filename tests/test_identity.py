"""Tests for aion_accounts.identity: key pairs, addresses and signing."""

from __future__ import annotations

import hashlib
import os

import pytest

from aion_accounts.errors import InvalidKeyError
from aion_accounts.identity import (
    KeyPair,
    blake2b256,
    create_checksum_address,
    create_key_pair,
    derive_address,
    equal_addresses,
    is_account_address,
    is_valid_checksum_address,
    key_pair_from_secret_key,
    sign_detached,
    verify_detached,
)

# Ed25519 public key of the all-zero seed.
ZERO_SEED_PUBLIC_KEY = "3b6a27bcceb6a42d62a3a8d02a6f0d73653215771de243a63ac048a18b59da29"
ZERO_SEED_ADDRESS = "0xa09dae2f77b048dcc08e14d73104ea14222b5be14cc31f34a16a1221f944c1e3"
ZERO_SEED_CHECKSUM_ADDRESS = "0xA09dAe2F77b048DcC08e14D73104eA14222B5bE14Cc31f34a16A1221f944c1E3"


def _expected_address(public_key: bytes) -> str:
    digest = hashlib.blake2b(public_key, digest_size=32).digest()
    return "0x" + (b"\xa0" + digest[1:]).hex()


class TestKeyPairCreation:
    """Ed25519 key pair generation via PyNaCl."""

    def test_random_key_pair_lengths(self) -> None:
        kp = create_key_pair()
        assert len(kp.secret_key) == 64, "secret key must be 64 bytes"
        assert len(kp.public_key) == 32, "public key must be 32 bytes"
        assert kp.secret_key[32:] == kp.public_key

    def test_random_key_pairs_differ(self) -> None:
        assert create_key_pair().public_key != create_key_pair().public_key

    def test_same_entropy_same_key_pair(self) -> None:
        entropy = b"\x01" * 32
        kp1 = create_key_pair(entropy)
        kp2 = create_key_pair(entropy)
        assert kp1.secret_key == kp2.secret_key
        assert kp1.public_key == kp2.public_key

    def test_seed_is_first_half(self) -> None:
        entropy = os.urandom(32)
        assert create_key_pair(entropy).seed == entropy

    @pytest.mark.parametrize("length", [0, 16, 31, 33, 64])
    def test_wrong_entropy_length_raises(self, length: int) -> None:
        with pytest.raises(InvalidKeyError, match="32 bytes"):
            create_key_pair(b"\x00" * length)


class TestZeroSeedVector:
    """Pinned regression vector for the all-zero seed."""

    def test_public_key(self) -> None:
        kp = create_key_pair(b"\x00" * 32)
        assert kp.public_key.hex() == ZERO_SEED_PUBLIC_KEY
        assert kp.secret_key.hex() == "00" * 32 + ZERO_SEED_PUBLIC_KEY

    def test_address(self) -> None:
        kp = create_key_pair(b"\x00" * 32)
        assert derive_address(kp.public_key) == ZERO_SEED_ADDRESS

    def test_checksum_address(self) -> None:
        assert create_checksum_address(ZERO_SEED_ADDRESS) == ZERO_SEED_CHECKSUM_ADDRESS
        assert is_valid_checksum_address(ZERO_SEED_CHECKSUM_ADDRESS)
        assert not is_valid_checksum_address(ZERO_SEED_ADDRESS)

    def test_address_stable_across_calls(self) -> None:
        a1 = derive_address(create_key_pair(b"\x00" * 32).public_key)
        a2 = derive_address(create_key_pair(b"\x00" * 32).public_key)
        assert a1 == a2


class TestFromSecretKey:
    """Reconstruction from the 64-byte NaCl secret key."""

    def test_roundtrip_bytes(self) -> None:
        kp = create_key_pair()
        restored = key_pair_from_secret_key(kp.secret_key)
        assert restored.public_key == kp.public_key

    def test_roundtrip_hex(self) -> None:
        kp = create_key_pair()
        restored = key_pair_from_secret_key("0x" + kp.secret_key.hex())
        assert restored.secret_key == kp.secret_key

    def test_wrong_length_raises(self) -> None:
        with pytest.raises(InvalidKeyError, match="64 bytes"):
            key_pair_from_secret_key(b"\x00" * 32)

    def test_mismatched_public_half_raises(self) -> None:
        kp = create_key_pair()
        forged = kp.seed + create_key_pair().public_key
        with pytest.raises(InvalidKeyError):
            key_pair_from_secret_key(forged)

    def test_non_hex_raises(self) -> None:
        with pytest.raises(InvalidKeyError):
            key_pair_from_secret_key("0xzz")


class TestWipe:
    """Secret material is zeroed on disposal."""

    def test_wipe_blocks_secret_access(self) -> None:
        kp = create_key_pair()
        kp.wipe()
        assert kp.wiped
        with pytest.raises(InvalidKeyError, match="wiped"):
            _ = kp.secret_key

    def test_public_key_survives_wipe(self) -> None:
        kp = create_key_pair(b"\x00" * 32)
        kp.wipe()
        assert kp.public_key.hex() == ZERO_SEED_PUBLIC_KEY

    def test_context_manager_wipes(self) -> None:
        with create_key_pair() as kp:
            assert len(kp.secret_key) == 64
        assert kp.wiped

    def test_wipe_zeroes_buffer(self) -> None:
        kp = create_key_pair(b"\x07" * 32)
        buffer = kp._secret_key
        kp.wipe()
        assert buffer == bytearray(64)

    def test_repr_hides_secret(self) -> None:
        kp = create_key_pair(b"\x00" * 32)
        assert "00" * 32 + ZERO_SEED_PUBLIC_KEY not in repr(kp)

    def test_constructor_rejects_bad_lengths(self) -> None:
        with pytest.raises(InvalidKeyError):
            KeyPair(b"\x00" * 63, b"\x00" * 32)
        with pytest.raises(InvalidKeyError):
            KeyPair(b"\x00" * 64, b"\x00" * 31)


class TestAddresses:
    """Address derivation and format helpers."""

    def test_address_layout(self) -> None:
        kp = create_key_pair()
        address = derive_address(kp.public_key)
        assert address == _expected_address(kp.public_key)
        assert address == address.lower()

    def test_custom_network_tag(self) -> None:
        kp = create_key_pair()
        address = derive_address(kp.public_key, network_tag=0x01)
        assert address.startswith("0x01")
        assert address[4:] == _expected_address(kp.public_key)[4:]

    def test_address_to_bytes(self) -> None:
        address = derive_address(create_key_pair().public_key)
        assert len(address.to_bytes()) == 32

    def test_wrong_public_key_length_raises(self) -> None:
        with pytest.raises(InvalidKeyError, match="32 bytes"):
            derive_address(b"\x00" * 16)

    def test_is_account_address(self) -> None:
        address = derive_address(create_key_pair().public_key)
        assert is_account_address(address)
        assert is_account_address(address[2:])
        assert not is_account_address(address[:-2])
        assert not is_account_address(None)
        assert not is_account_address("0x" + "g" * 64)

    def test_equal_addresses(self) -> None:
        address = derive_address(create_key_pair().public_key)
        assert equal_addresses(address, address.upper()[2:])
        assert not equal_addresses(address, "0x" + "00" * 32)


class TestChecksumAddress:
    """Mixed-case checksum rendering."""

    def test_checksum_is_valid(self) -> None:
        for _ in range(10):
            address = derive_address(create_key_pair().public_key)
            assert is_valid_checksum_address(create_checksum_address(address))

    def test_checksum_matches_hash_bits(self) -> None:
        address = derive_address(create_key_pair(b"\x00" * 32).public_key)
        checksummed = create_checksum_address(address)
        plain = address[2:]
        digest = blake2b256(bytes.fromhex(plain))
        for i, ch in enumerate(checksummed[2:]):
            if plain[i].isdigit():
                assert ch == plain[i]
            elif (digest[i // 8] >> (i % 8)) & 1:
                assert ch == plain[i].upper()
            else:
                assert ch == plain[i]

    def test_flipping_one_letter_invalidates(self) -> None:
        address = derive_address(create_key_pair(b"\x00" * 32).public_key)
        checksummed = create_checksum_address(address)
        # index 2 is the first character of the 0xa0 network tag
        flipped_char = checksummed[2].swapcase()
        flipped = checksummed[:2] + flipped_char + checksummed[3:]
        assert not is_valid_checksum_address(flipped)

    def test_checksum_ignores_input_case(self) -> None:
        address = derive_address(create_key_pair().public_key)
        assert create_checksum_address(address) == create_checksum_address(address.upper().replace("0X", "0x"))

    def test_invalid_address_raises(self) -> None:
        with pytest.raises(ValueError):
            create_checksum_address("0x1234")
        assert not is_valid_checksum_address("0x1234")


class TestDetachedSignatures:
    """Ed25519 sign / verify via PyNaCl."""

    def test_sign_verify_roundtrip(self) -> None:
        kp = create_key_pair()
        sig = sign_detached(b"transfer 100 AION", kp.secret_key)
        assert len(sig) == 64
        assert verify_detached(b"transfer 100 AION", sig, kp.public_key) is True

    def test_seed_only_key_signs_identically(self) -> None:
        kp = create_key_pair()
        assert sign_detached(b"m", kp.secret_key) == sign_detached(b"m", kp.seed)

    def test_wrong_message_fails(self) -> None:
        kp = create_key_pair()
        sig = sign_detached(b"correct", kp.secret_key)
        assert verify_detached(b"wrong", sig, kp.public_key) is False

    def test_wrong_key_fails(self) -> None:
        kp1 = create_key_pair()
        kp2 = create_key_pair()
        sig = sign_detached(b"hello", kp1.secret_key)
        assert verify_detached(b"hello", sig, kp2.public_key) is False

    def test_malformed_inputs_fail(self) -> None:
        kp = create_key_pair()
        sig = sign_detached(b"hello", kp.secret_key)
        assert verify_detached(b"hello", sig[:10], kp.public_key) is False
        assert verify_detached(b"hello", sig, kp.public_key[:10]) is False

    def test_deterministic_signatures(self) -> None:
        kp = create_key_pair(b"\xcc" * 32)
        assert sign_detached(b"same", kp.secret_key) == sign_detached(b"same", kp.secret_key)

    def test_short_key_raises(self) -> None:
        with pytest.raises(InvalidKeyError):
            sign_detached(b"m", b"\x00" * 8)
