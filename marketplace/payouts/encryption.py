"""
Encryption of payout secrets at rest and masking for display.

Stored values use the wire format ``<32 hex char iv>:<hex ciphertext>``. New values
are AES-256-GCM (the auth tag is the tail of the ciphertext) with a fresh random iv
per call. Values that do not match the format are legacy plaintext written before
encryption was introduced , values written by the old AES-256-CBC scheme can still be
read when ``PAYOUT_LEGACY_ENCRYPTION_SECRET`` is configured.

Masking works on plaintext only . Anything that looks encrypted but cannot be
decrypted is shown as a placeholder , never as a masked slice of ciphertext.
"""
import base64
import binascii
import enum
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from marketplace.config.settings import config_settings
from marketplace.payouts.constants import MASK, UNAVAILABLE_PLACEHOLDER, logger

IV_LENGTH = 16
KEY_LENGTH = 32

_STORED_FORMAT = re.compile(r"^[0-9a-fA-F]{32}:[0-9a-fA-F]+$")

# parameters the legacy records were derived with (node scryptSync defaults , fixed salt)
_LEGACY_SALT = b"salt"
_LEGACY_SCRYPT_N = 16384
_LEGACY_SCRYPT_R = 8
_LEGACY_SCRYPT_P = 1


class RevealState(str, enum.Enum):
    DECRYPTED = "decrypted"
    LEGACY_PLAINTEXT = "legacy_plaintext"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Revealed:
    value: Optional[str]
    state: RevealState


def looks_encrypted(stored: str) -> bool:
    return bool(stored) and _STORED_FORMAT.match(stored) is not None


def parse_key(raw: str) -> bytes:
    """Accept a 32 byte key as 64 hex chars or urlsafe base64."""
    raw = raw.strip()
    key = None
    if len(raw) == KEY_LENGTH * 2:
        try:
            key = bytes.fromhex(raw)
        except ValueError:
            key = None
    if key is None:
        try:
            key = base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4))
        except (binascii.Error, ValueError):
            raise ValueError("PAYOUT_ENCRYPTION_KEY must be 32 bytes encoded as hex or urlsafe base64")
    if len(key) != KEY_LENGTH:
        raise ValueError("PAYOUT_ENCRYPTION_KEY must decode to exactly 32 bytes")
    return key


def derive_legacy_key(secret: str) -> bytes:
    kdf = Scrypt(salt=_LEGACY_SALT, length=KEY_LENGTH, n=_LEGACY_SCRYPT_N, r=_LEGACY_SCRYPT_R, p=_LEGACY_SCRYPT_P)
    return kdf.derive(secret.encode("utf-8"))


class SecretCipher:

    def __init__(self, key: bytes, legacy_key: Optional[bytes] = None):
        if len(key) != KEY_LENGTH:
            raise ValueError("encryption key must be 32 bytes")
        self._aead = AESGCM(key)
        self._legacy_key = legacy_key

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            # absent optional fields are skipped by callers , never stored as ciphertext of ""
            raise ValueError("cannot encrypt an empty value")
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        return f"{iv.hex()}:{sealed.hex()}"

    def reveal(self, stored: Optional[str]) -> Revealed:
        if not stored or not looks_encrypted(stored):
            return Revealed(stored, RevealState.LEGACY_PLAINTEXT)

        iv_hex, body_hex = stored.split(":")
        try:
            iv = bytes.fromhex(iv_hex)
            body = bytes.fromhex(body_hex)
        except ValueError:
            # odd length hex , not something this service wrote
            return Revealed(None, RevealState.UNAVAILABLE)

        try:
            return Revealed(self._aead.decrypt(iv, body, None).decode("utf-8"), RevealState.DECRYPTED)
        except (InvalidTag, UnicodeDecodeError):
            pass

        legacy = self._legacy_decrypt(iv, body)
        if legacy is not None:
            return Revealed(legacy, RevealState.DECRYPTED)

        logger.debug("payout.crypto.decrypt_fallback", extra={"stored_length": len(stored)})
        return Revealed(None, RevealState.UNAVAILABLE)

    def decrypt(self, stored: str) -> str:
        """Never raises . Values that can't be decrypted come back unchanged."""
        revealed = self.reveal(stored)
        if revealed.state is RevealState.UNAVAILABLE:
            return stored
        return revealed.value

    def _legacy_decrypt(self, iv: bytes, body: bytes) -> Optional[str]:
        if self._legacy_key is None or not body or len(body) % 16:
            return None
        try:
            decryptor = Cipher(algorithms.AES(self._legacy_key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(128).unpadder()
            return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return None


@lru_cache(maxsize=1)
def get_cipher() -> SecretCipher:
    """Process wide cipher , the key is loaded once and never changes at runtime."""
    key = parse_key(config_settings.PAYOUT_ENCRYPTION_KEY)
    legacy_secret = config_settings.PAYOUT_LEGACY_ENCRYPTION_SECRET
    legacy_key = derive_legacy_key(legacy_secret) if legacy_secret else None
    return SecretCipher(key, legacy_key)


def encrypt(plaintext: str) -> str:
    return get_cipher().encrypt(plaintext)


def decrypt(stored: str) -> str:
    return get_cipher().decrypt(stored)


def encrypt_optional(plaintext: Optional[str]) -> Optional[str]:
    return encrypt(plaintext) if plaintext else None


def mask_account_number(account_number: Optional[str]) -> str:
    if not account_number or len(account_number) < 4:
        return MASK
    return MASK + account_number[-4:]


def mask_routing_number(routing_number: Optional[str]) -> str:
    if not routing_number or len(routing_number) < 4:
        return MASK
    return MASK + routing_number[-4:]


def mask_secret(stored: Optional[str], cipher: Optional[SecretCipher] = None, masker=mask_account_number) -> Optional[str]:
    """Decrypt then mask a stored secret for display."""
    if not stored:
        return None
    revealed = (cipher or get_cipher()).reveal(stored)
    if revealed.state is RevealState.UNAVAILABLE:
        return UNAVAILABLE_PLACEHOLDER
    return masker(revealed.value)
