"""Encrypted API key storage.

Keys are encrypted with AES-256-GCM. The AES key is derived with PBKDF2-HMAC-SHA256
(100 000 iterations) from the per-installation salt, used as password material, and
the record's setting key (`platform/model`), used as the PBKDF2 salt. Stored records
are `base64(iv || ciphertext+tag)`.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
from typing import Iterable, List, Mapping, MutableMapping, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import CryptoError


logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 32
IV_LENGTH = 12


def generate_salt(nbytes: int = 24) -> str:
    return secrets.token_urlsafe(nbytes)


def derive_key(password: str, salt: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=str(salt).encode("utf-8"),
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(str(password).encode("utf-8"))


def encrypt_string(text: str, password: str, salt: str) -> str:
    key = derive_key(password, salt)
    iv = os.urandom(IV_LENGTH)
    ct = AESGCM(key).encrypt(iv, str(text).encode("utf-8"), None)
    return base64.b64encode(iv + ct).decode("ascii")


def decrypt_string(blob: str, password: str, salt: str) -> str:
    try:
        raw = base64.b64decode(str(blob or ""), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError("Stored credential is not valid base64") from e
    if len(raw) <= IV_LENGTH:
        raise CryptoError("Stored credential is truncated")

    iv, ct = raw[:IV_LENGTH], raw[IV_LENGTH:]
    key = derive_key(password, salt)
    try:
        plain = AESGCM(key).decrypt(iv, ct, None)
    except InvalidTag as e:
        raise CryptoError("Stored credential failed authentication") from e
    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CryptoError("Stored credential is not valid UTF-8") from e


class CredentialVault:
    """API keys encrypted at rest, keyed by `platform/model`.

    `records` is the persisted mapping (usually `PluginSettings.ai_model_api_keys`);
    only ciphertext is ever written to it.
    """

    def __init__(self, installation_salt: str, records: Optional[MutableMapping[str, str]] = None):
        if not str(installation_salt or "").strip():
            raise ValueError("installation_salt must be a non-empty string")
        self._secret = str(installation_salt)
        self._records: MutableMapping[str, str] = records if records is not None else {}

    def setting_keys(self) -> List[str]:
        return sorted(self._records.keys())

    def has_key(self, setting_key: str) -> bool:
        return setting_key in self._records and bool(self._records[setting_key])

    def store_key(self, setting_key: str, api_key: str) -> None:
        setting_key = str(setting_key or "").strip()
        if not setting_key:
            raise ValueError("setting_key must be a non-empty string")
        api_key = str(api_key or "").strip()
        if not api_key:
            self.remove_key(setting_key)
            return
        self._records[setting_key] = encrypt_string(api_key, self._secret, setting_key)
        logger.info("Stored encrypted API key for %s", setting_key)

    def store_many(self, items: Mapping[str, str]) -> None:
        for setting_key, api_key in items.items():
            self.store_key(setting_key, api_key)

    def remove_key(self, setting_key: str) -> None:
        if self._records.pop(setting_key, None) is not None:
            logger.info("Removed API key for %s", setting_key)

    def get_key(self, setting_key: str) -> Optional[str]:
        """Decrypt the key for `setting_key`; None when absent or undecryptable."""
        blob = self._records.get(setting_key)
        if not blob:
            return None
        try:
            return decrypt_string(blob, self._secret, setting_key)
        except CryptoError as e:
            logger.warning("Cannot decrypt API key for %s (%s); treating it as absent", setting_key, e)
            return None

    def present_keys(self, setting_keys: Iterable[str]) -> List[str]:
        return [k for k in setting_keys if self.has_key(k)]
