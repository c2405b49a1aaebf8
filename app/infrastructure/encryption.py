import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import settings

logger = logging.getLogger(__name__)


class EncryptionManager:
    """Encrypts clinical free-text fields before they are stored"""

    # Patient profile columns holding clinical data
    SENSITIVE_FIELDS = frozenset({
        "allergies", "chronic_conditions", "blood_type",
    })

    def __init__(self, key: Optional[str] = None):
        self._cipher = self._build_cipher(key or settings.ENCRYPTION_KEY)

    @staticmethod
    def _build_cipher(secret: str) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b'healthpal_portal_salt',
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
        return Fernet(key)

    def encrypt_data(self, data: Optional[str]) -> Optional[str]:
        """Encrypt a string value"""
        if not data:
            return data
        return self._cipher.encrypt(str(data).encode("utf-8")).decode("utf-8")

    def decrypt_data(self, encrypted_data: Optional[str]) -> Optional[str]:
        """Decrypt a string value; plain text written before encryption passes through"""
        if not encrypted_data:
            return encrypted_data
        try:
            return self._cipher.decrypt(encrypted_data.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            logger.warning("Stored value is not encrypted, returning as is")
            return encrypted_data

    def encrypt_dict(self, data: dict) -> dict:
        """Encrypt the sensitive fields of a dictionary"""
        return {
            key: self.encrypt_data(value) if self.should_encrypt_field(key) else value
            for key, value in data.items()
        }

    def should_encrypt_field(self, field_name: str) -> bool:
        return field_name.lower() in self.SENSITIVE_FIELDS

    @staticmethod
    def generate_hash(data: bytes) -> str:
        """SHA-256 hex digest"""
        return hashlib.sha256(data).hexdigest()


encryption_manager = EncryptionManager()
