import base64
import os
import re
import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from conftest import TEST_KEY_HEX
from marketplace.payouts.encryption import (RevealState, SecretCipher, decrypt, derive_legacy_key, encrypt,
                                            mask_account_number, mask_routing_number, mask_secret, parse_key)

STORED = re.compile(r"^[0-9a-f]{32}:[0-9a-f]+$")


@pytest.fixture
def cipher():
    return SecretCipher(parse_key(TEST_KEY_HEX))


def _legacy_cbc(secret: str, plaintext: str) -> str:
    # what records written before the gcm switch look like
    iv = os.urandom(16)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode()) + padder.finalize()
    enc = Cipher(algorithms.AES(derive_legacy_key(secret)), modes.CBC(iv)).encryptor()
    return f"{iv.hex()}:{(enc.update(padded) + enc.finalize()).hex()}"


def test_round_trip(cipher):
    for value in ("1234567890", "110000021", "+233 24 000 1111", "ünïcødé-acct"):
        stored = cipher.encrypt(value)
        assert STORED.match(stored)
        assert value not in stored
        assert cipher.decrypt(stored) == value


def test_module_level_helpers_use_configured_key():
    stored = encrypt("9876543210")
    assert decrypt(stored) == "9876543210"


def test_encrypt_is_not_deterministic(cipher):
    first = cipher.encrypt("1234567890")
    second = cipher.encrypt("1234567890")
    assert first != second
    assert first.split(":")[0] != second.split(":")[0]


def test_encrypt_rejects_empty_value(cipher):
    with pytest.raises(ValueError):
        cipher.encrypt("")


def test_plaintext_is_returned_unchanged(cipher):
    assert cipher.decrypt("1234567890") == "1234567890"
    assert cipher.decrypt("not:hex:at:all") == "not:hex:at:all"
    revealed = cipher.reveal("1234567890")
    assert revealed.state is RevealState.LEGACY_PLAINTEXT
    assert revealed.value == "1234567890"


def test_tampered_ciphertext_falls_back_without_raising(cipher):
    stored = cipher.encrypt("1234567890")
    iv, body = stored.split(":")
    flipped = body[:-2] + ("00" if body[-2:] != "00" else "ff")
    tampered = f"{iv}:{flipped}"

    assert cipher.decrypt(tampered) == tampered
    assert cipher.reveal(tampered).state is RevealState.UNAVAILABLE


def test_value_from_another_key_is_unavailable(cipher):
    other = SecretCipher(os.urandom(32))
    stored = other.encrypt("1234567890")
    assert cipher.reveal(stored).state is RevealState.UNAVAILABLE
    assert mask_secret(stored, cipher) == "[unavailable]"


def test_odd_length_hex_is_unavailable(cipher):
    stored = "0" * 32 + ":abc"
    assert cipher.reveal(stored).state is RevealState.UNAVAILABLE
    assert cipher.decrypt(stored) == stored


def test_legacy_cbc_records_decrypt_with_legacy_secret():
    legacy_secret = "old-deployment-secret"
    stored = _legacy_cbc(legacy_secret, "5555444433")

    with_legacy = SecretCipher(parse_key(TEST_KEY_HEX), derive_legacy_key(legacy_secret))
    without_legacy = SecretCipher(parse_key(TEST_KEY_HEX))

    assert with_legacy.decrypt(stored) == "5555444433"
    assert without_legacy.reveal(stored).state is RevealState.UNAVAILABLE


def test_masking():
    assert mask_account_number("1234567890") == "****7890"
    assert mask_account_number("123") == "****"
    assert mask_account_number("") == "****"
    assert mask_account_number(None) == "****"
    assert mask_routing_number("110000021") == "****0021"
    assert mask_routing_number("12") == "****"


def test_mask_secret_decrypts_before_masking(cipher):
    stored = cipher.encrypt("1234567890")
    assert mask_secret(stored, cipher) == "****7890"
    assert mask_secret("1234567890", cipher) == "****7890"
    assert mask_secret(None, cipher) is None


def test_parse_key_accepts_hex_and_base64():
    raw = bytes.fromhex(TEST_KEY_HEX)
    assert parse_key(TEST_KEY_HEX) == raw
    assert parse_key(base64.urlsafe_b64encode(raw).decode()) == raw

    with pytest.raises(ValueError):
        parse_key("too-short")
