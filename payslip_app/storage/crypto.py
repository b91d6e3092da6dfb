"""Encryption at rest for the file-backed payslip store."""
from __future__ import annotations

from dataclasses import dataclass

from cryptography.fernet import Fernet, InvalidToken

from payslip_app.config import Settings


class EncryptionError(Exception):
    pass


def _padded(key: str) -> bytes:
    raw = key.strip().encode("utf-8")
    return raw + b"=" * (-len(raw) % 4)


@dataclass(frozen=True)
class StoreCipher:
    """Seals store records with Fernet. Keys may be supplied without base64 padding."""

    fernet: Fernet

    @classmethod
    def from_key(cls, key: str) -> StoreCipher:
        try:
            return cls(Fernet(_padded(key)))
        except ValueError as exc:
            raise EncryptionError("STORE_CRYPTO_KEY is not a valid Fernet key") from exc

    @classmethod
    def from_settings(cls, settings: Settings) -> StoreCipher | None:
        if not settings.store_crypto_key:
            return None
        return cls.from_key(settings.store_crypto_key)

    def seal(self, payload: bytes) -> bytes:
        return self.fernet.encrypt(payload)

    def unseal(self, token: bytes, *, label: str = "record") -> bytes:
        try:
            return self.fernet.decrypt(token)
        except InvalidToken as exc:
            raise EncryptionError(f"Cannot decrypt {label} with the configured store key") from exc
